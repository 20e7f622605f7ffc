"""Calculo de precios de la compra.

Funciones puras: no tocan la sesion ni la red. El total de un box completo es
un precio de paquete fijo y nunca se deriva de ``cantidad x precio por puesto``.
"""
from decimal import Decimal, ROUND_HALF_UP

from models import to_decimal
import compra.constants as constants

CENTS = Decimal('0.01')


def box_prices(config=None):
    """(precio por puesto, precio box completo) segun config o los valores por defecto."""
    config = config or {}
    seat_price = to_decimal(config.get('BOX_SEAT_PRICE_USD'), constants.BOX_SEAT_PRICE_USD)
    full_price = to_decimal(config.get('BOX_FULL_PRICE_USD'), constants.BOX_FULL_PRICE_USD)
    return seat_price, full_price


def unit_price(zone, seat_price=constants.BOX_SEAT_PRICE_USD) -> Decimal:
    if zone is None:
        return Decimal('0')
    # en boxes siempre el precio por puesto, aun en compra completa
    if zone.is_box_purchase:
        return to_decimal(seat_price)
    return to_decimal(zone.price_usd)


def ticket_quantity(zone, seats, general_quantity) -> int:
    if zone is None:
        return 0
    if zone.is_box_purchase:
        return zone.box_quantity or general_quantity or 1
    if zone.is_numbered:
        return len(seats)
    return general_quantity


def total_price(zone, seats, general_quantity,
                seat_price=constants.BOX_SEAT_PRICE_USD,
                full_price=constants.BOX_FULL_PRICE_USD) -> Decimal:
    if zone is None:
        return Decimal('0')

    if zone.is_box_purchase:
        if zone.box_full_purchase:
            return to_decimal(full_price)
        quantity = zone.box_quantity or general_quantity or 1
        return quantity * to_decimal(seat_price)

    if zone.is_numbered:
        return len(seats) * to_decimal(zone.price_usd)

    return general_quantity * to_decimal(zone.price_usd)


def selection_total(selection, config=None) -> Decimal:
    seat_price, full_price = box_prices(config)
    return total_price(selection.zone, selection.seats, selection.general_quantity, seat_price, full_price)


def box_savings(seat_price=constants.BOX_SEAT_PRICE_USD,
                full_price=constants.BOX_FULL_PRICE_USD,
                capacity=constants.BOX_CAPACITY) -> Decimal:
    """Ahorro del box completo frente a comprar los puestos por separado.

    Puede ser cero o negativo si los precios configurados cambian; quien lo
    muestre decide si lo oculta.
    """
    return capacity * to_decimal(seat_price) - to_decimal(full_price)


def bs_amount(usd_amount, exchange_rate) -> str:
    if exchange_rate is None:
        return '0.00'
    amount = to_decimal(usd_amount) * to_decimal(exchange_rate)
    return str(amount.quantize(CENTS, rounding=ROUND_HALF_UP))


def availability_percentage(available, total) -> float:
    if not total:
        return 0.0
    return available / total * 100


def occupied_percentage(available, total) -> float:
    if not total:
        return 0.0
    return 100 - availability_percentage(available, total)


def zone_availability_percentage(zone) -> float:
    return availability_percentage(zone.available, zone.total_capacity)


def is_low_availability(percentage, threshold=constants.LOW_AVAILABILITY_THRESHOLD) -> bool:
    return percentage < threshold


def format_currency(amount, currency='USD') -> str:
    symbol = '$' if currency == 'USD' else 'Bs.'
    return f"{symbol} {to_decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)}"


def purchase_description(zone, quantity) -> str:
    if zone is None:
        return ''

    if zone.is_box_purchase:
        if zone.box_full_purchase:
            return f'Box Completo ({constants.BOX_CAPACITY} puestos)'
        return f"{quantity} {'puesto' if quantity == 1 else 'puestos'} en box"

    if zone.zone_type == 'general':
        return f"{quantity} {'entrada general' if quantity == 1 else 'entradas generales'}"

    return f"{quantity} {'entrada' if quantity == 1 else 'entradas'} VIP"
