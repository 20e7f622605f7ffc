"""Estado de "que se esta comprando": zona, asientos, cantidad y modo del box.

Las cantidades fuera de rango se recortan al limite, nunca producen error.
"""
import compra.constants as constants
from compra.inventory import general_zone, box_zone, vip_seats, is_box_code
from compra.pricing import box_prices
from models import Selection, Seat, Zone

PREFERENCIAL = 'preferencial'
BOX = 'box'


def clamp(value, minimum, maximum):
    return max(minimum, min(int(value), maximum))


class SelectionController:

    def __init__(self, config=None, max_tickets=None):
        self.config = config or {}
        # limite adicional impuesto por el token del iframe
        self.max_tickets = max_tickets
        self.zone_type = None
        self.selected_box = None
        self.box_quantity = 1
        # puestos libres del box elegido segun el backend
        self.box_available = constants.BOX_CAPACITY
        self.purchase_full_box = False
        self.selection = Selection()
        self.available_seats = []

    # --- limites ---

    def _general_max(self):
        limit = constants.PURCHASE_LIMITS['max_general_tickets']
        if self.max_tickets:
            limit = min(limit, self.max_tickets)
        return limit

    def _box_max(self):
        limit = min(constants.PURCHASE_LIMITS['max_box_tickets'], self.box_available)
        if self.max_tickets:
            limit = min(limit, self.max_tickets)
        return limit

    def _seat_max(self):
        limit = constants.PURCHASE_LIMITS['max_vip_seats']
        if self.max_tickets:
            limit = min(limit, self.max_tickets)
        return limit

    # --- seleccion de zona ---

    def _set_zone(self, zone):
        self.selection.zone = zone
        self.selection.seats = []
        self.selection.general_quantity = constants.PURCHASE_LIMITS['min_tickets']
        self.available_seats = vip_seats(zone)

    def select_preferencial(self):
        self.zone_type = PREFERENCIAL
        self.selected_box = None
        self.purchase_full_box = False
        self.box_quantity = 1
        self.box_available = constants.BOX_CAPACITY
        self._set_zone(general_zone(self.config))

    def select_box(self, code, available=None):
        """Elige un box. ``available`` son los puestos libres reportados por el backend."""
        code = (code or '').upper()
        if not is_box_code(code):
            raise ValueError(f'Box desconocido: {code}')
        if available is None:
            available = constants.BOX_CAPACITY
        if available < constants.PURCHASE_LIMITS['min_tickets']:
            raise ValueError(constants.MESSAGES['box_unavailable'])
        self.zone_type = BOX
        self.selected_box = code
        self.purchase_full_box = False
        self.box_quantity = 1
        self.box_available = min(int(available), constants.BOX_CAPACITY)
        self._set_zone(self._box_zone())

    def select_zone(self, zone: Zone):
        """Zona arbitraria del catalogo o del snapshot del servidor."""
        if zone.is_box_purchase:
            self.select_box(zone.zone_code, zone.available)
            return
        self.zone_type = PREFERENCIAL if zone.zone_type == 'general' else zone.zone_type
        self.selected_box = None
        self.purchase_full_box = False
        self.box_quantity = 1
        self.box_available = constants.BOX_CAPACITY
        self._set_zone(zone)

    def clear(self):
        self.zone_type = None
        self.selected_box = None
        self.purchase_full_box = False
        self.box_quantity = 1
        self.box_available = constants.BOX_CAPACITY
        self.selection = Selection()
        self.available_seats = []

    def _box_zone(self):
        seat_price, _ = box_prices(self.config)
        return box_zone(self.selected_box, full=self.purchase_full_box,
                        quantity=self.box_quantity, seat_price=seat_price,
                        available=self.box_available)

    @property
    def box_complete(self):
        return self.box_available >= constants.BOX_CAPACITY

    def set_full_box(self, full: bool):
        if self.zone_type != BOX or not self.selected_box:
            return False
        # el box completo solo se vende si estan libres los 10 puestos
        if full and not self.box_complete:
            return False
        self.purchase_full_box = bool(full)
        self.box_quantity = constants.BOX_CAPACITY if self.purchase_full_box else 1
        self.selection.zone = self._box_zone()
        self.selection.general_quantity = self.box_quantity
        return True

    # --- cantidades ---

    def set_quantity(self, quantity):
        min_tickets = constants.PURCHASE_LIMITS['min_tickets']
        if self.zone_type == BOX and self.selected_box:
            # en box completo la cantidad es fija
            if self.purchase_full_box:
                return self.box_quantity
            self.box_quantity = clamp(quantity, min_tickets, self._box_max())
            self.selection.zone = self._box_zone()
            self.selection.general_quantity = self.box_quantity
            return self.box_quantity

        self.selection.general_quantity = clamp(quantity, min_tickets, self._general_max())
        return self.selection.general_quantity

    def increment(self):
        return self.set_quantity(self.current_quantity() + 1)

    def decrement(self):
        return self.set_quantity(self.current_quantity() - 1)

    def current_quantity(self):
        if self.zone_type == BOX and self.selected_box:
            return self.box_quantity
        return self.selection.general_quantity

    # --- asientos ---

    def toggle_seat(self, seat_id):
        """Selecciona o deselecciona un asiento. Retorna un mensaje si se rechaza."""
        seat = next((s for s in self.available_seats if s.id == seat_id), None)
        if seat is None or seat.status != 'available':
            return constants.MESSAGES['seat_unavailable']

        if any(s.id == seat.id for s in self.selection.seats):
            self.selection.seats = [s for s in self.selection.seats if s.id != seat.id]
            return None

        if len(self.selection.seats) >= self._seat_max():
            return constants.MESSAGES['max_seats'].format(max=self._seat_max())
        self.selection.seats = self.selection.seats + [seat]
        return None

    # --- persistencia en sesion ---

    def to_dict(self):
        return {
            'zone_type': self.zone_type,
            'selected_box': self.selected_box,
            'box_quantity': self.box_quantity,
            'box_available': self.box_available,
            'purchase_full_box': self.purchase_full_box,
            'selection': self.selection.to_dict(),
            'available_seats': [s.to_dict() for s in self.available_seats],
            'max_tickets': self.max_tickets,
        }

    @classmethod
    def from_dict(cls, data, config=None):
        controller = cls(config, max_tickets=(data or {}).get('max_tickets'))
        if not data:
            return controller
        controller.zone_type = data.get('zone_type')
        controller.selected_box = data.get('selected_box')
        controller.box_quantity = int(data.get('box_quantity') or 1)
        controller.box_available = int(data.get('box_available') or constants.BOX_CAPACITY)
        controller.purchase_full_box = bool(data.get('purchase_full_box'))
        controller.selection = Selection.from_dict(data.get('selection'))
        controller.available_seats = [Seat.from_dict(s) for s in data.get('available_seats') or []]
        return controller
