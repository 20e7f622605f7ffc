import logging
from dataclasses import dataclass
from models import Zone, Seat, Serializable, to_decimal
import compra.constants as constants
from compra.pricing import box_prices


@dataclass
class InventorySummary(Serializable):
    total_capacity: int = 5000
    sold_count: int = 0
    reserved_count: int = 0
    available_count: int = 5000


def general_zone(config=None) -> Zone:
    config = config or {}
    price = to_decimal(config.get('GENERAL_PRICE_USD'), constants.GENERAL_PRICE_USD)
    return Zone(
        id=constants.GENERAL_ZONE['id'],
        zone_code=constants.GENERAL_ZONE['zone_code'],
        zone_name=constants.GENERAL_ZONE['zone_name'],
        zone_type='general',
        price_usd=price,
        total_capacity=constants.GENERAL_ZONE['total_capacity'],
        available=constants.GENERAL_ZONE['available'],
        is_numbered=False,
        description=constants.GENERAL_ZONE['description'],
    )


def box_code(number) -> str:
    return f'B{int(number)}'


def is_box_code(code) -> bool:
    if not code or not code.upper().startswith('B'):
        return False
    digits = code[1:]
    return digits.isdigit() and 1 <= int(digits) <= constants.TOTAL_BOXES


def box_zone(code, full=False, quantity=1, seat_price=constants.BOX_SEAT_PRICE_USD, available=None) -> Zone:
    """Zona para un box. El precio guardado es siempre el precio por puesto."""
    capacity = constants.BOX_CAPACITY
    if available is None:
        available = capacity
    return Zone(
        id=code,
        zone_code=code,
        zone_name=f'Box {code}',
        zone_type='vip',
        price_usd=to_decimal(seat_price),
        total_capacity=capacity,
        available=max(0, min(int(available), capacity)),
        is_numbered=False,
        description=f'Box privado {code} - Capacidad para {capacity} personas',
        is_box_purchase=True,
        box_full_purchase=full,
        box_quantity=capacity if full else quantity,
    )


def default_catalog(config=None):
    """Catalogo fijo: la zona general mas los 30 boxes."""
    seat_price, _ = box_prices(config)
    zones = [general_zone(config)]
    for number in range(1, constants.TOTAL_BOXES + 1):
        zones.append(box_zone(box_code(number), seat_price=seat_price))
    return zones


def vip_seats(zone, sold_seats=None):
    """Mapa de asientos VIP numerados (filas A-F, 5 por fila)."""
    if zone is None or not zone.is_numbered or zone.zone_type != 'vip':
        return []

    sold = set(constants.VIP_SEAT_CONFIG['sold_seats'] if sold_seats is None else sold_seats)
    seats = []
    for row_index, row in enumerate(constants.VIP_SEAT_CONFIG['rows']):
        for col in range(1, constants.VIP_SEAT_CONFIG['seats_per_row'] + 1):
            seat_number = f'V{row}{col:02d}'
            seats.append(Seat(
                id=f'{zone.id}_{row_index}_{col}',
                seat_number=seat_number,
                row=row,
                column=col,
                status='sold' if seat_number in sold else 'available',
                price=zone.price_usd,
                zone_type=zone.zone_type,
            ))
    return seats


def find_zone(zones, zone_id):
    for zone in zones:
        if zone.id == zone_id:
            return zone
    return None


def _capped_zone(**kwargs) -> Zone:
    # el servidor puede reportar mas disponibles que capacidad; se recorta
    kwargs['available'] = max(0, min(int(kwargs['available'] or 0), int(kwargs['total_capacity'] or 0)))
    return Zone(**kwargs)


def zones_from_availability(data):
    """Convierte la respuesta de disponibilidad del backend en zonas.

    Retorna ``(zones, boxes_detail)``.
    """
    zones = []
    data = data or {}

    general = data.get('general')
    if general:
        zones.append(_capped_zone(
            id='general',
            zone_code='GENERAL',
            zone_name='Entrada General',
            zone_type='general',
            price_usd=to_decimal(general.get('price_usd'), '35.00'),
            total_capacity=general.get('capacity') or 4970,
            available=general.get('available') or 0,
            is_numbered=False,
            zone_color='#667eea',
            description='Acceso general al concierto',
        ))

    boxes = data.get('boxes') or {}
    summary = boxes.get('summary')
    detail = boxes.get('detail') or []
    if summary:
        available_boxes = [b for b in detail if b.get('status') == 'available']
        if available_boxes:
            zones.append(_capped_zone(
                id='boxes',
                zone_code='BOX',
                zone_name='Boxes Premium',
                zone_type='vip',
                price_usd=to_decimal(available_boxes[0].get('price_usd'), '750.00'),
                total_capacity=(summary.get('total_boxes') or 0) * constants.BOX_CAPACITY,
                available=summary.get('available_boxes') or 0,
                is_numbered=True,
                zone_color='#764ba2',
                description='Box privado con capacidad para 10 personas, servicio VIP incluido',
            ))

    for zone in data.get('zones') or []:
        if zone.get('code') in ('GENERAL', 'BOX'):
            continue
        try:
            capacity = int(zone.get('capacity') or 0)
            zones.append(_capped_zone(
                id=str(zone['id']),
                zone_code=zone['code'],
                zone_name=zone.get('name') or zone['code'],
                zone_type='vip' if zone.get('type') == 'vip' else 'general',
                price_usd=to_decimal(zone.get('price_usd')),
                total_capacity=capacity,
                available=capacity - int(zone.get('sold') or 0),
                is_numbered=zone.get('type') == 'vip',
                zone_color=zone.get('color') or '#667eea',
                description=zone.get('description') or '',
            ))
        except (KeyError, TypeError, ValueError):
            logging.warning("Zona ignorada en la respuesta de disponibilidad: %s", zone)

    return zones, detail


def summary_from_response(data) -> InventorySummary:
    if not isinstance(data, dict):
        return InventorySummary()
    # formato antiguo: total_tickets / sold_tickets / ...
    if 'total_tickets' in data:
        return InventorySummary(
            total_capacity=data.get('total_tickets') or 5270,
            sold_count=data.get('sold_tickets') or 0,
            reserved_count=data.get('reserved_tickets') or 0,
            available_count=data.get('available_tickets') or 5270,
        )
    return InventorySummary.from_dict(data)


def box_availability(detail, code):
    """Estado y puestos libres de un box segun el detalle del backend.

    Retorna ``None`` si el box no aparece en el detalle.
    """
    code = (code or '').upper()
    for entry in detail or []:
        if not isinstance(entry, dict) or str(entry.get('code') or '').upper() != code:
            continue
        status = entry.get('status') or 'available'
        try:
            seats = int(entry.get('available_seats'))
        except (TypeError, ValueError):
            seats = constants.BOX_CAPACITY if status == 'available' else 0
        return status, max(0, min(seats, constants.BOX_CAPACITY))
    return None
