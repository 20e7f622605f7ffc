"""Solicitudes de pago.

Cada metodo se traduce en exactamente una forma de solicitud:

* ``PagoMovilRequest``: pago movil P2C, instantaneo, va al endpoint de inicio.
* ``ManualPaymentRequest``: transferencia, zelle o paypal; va al endpoint de pago
  manual y queda ``pendiente`` hasta que alguien lo verifique.

Todas llevan los descriptores del box para que el servidor recalcule el precio
por su cuenta; el total calculado aqui es solo informativo.
"""
import json
from dataclasses import dataclass, field, asdict
from decimal import Decimal
from typing import List, Optional, Union

import compra.constants as constants
from compra.pricing import box_prices, total_price, unit_price, ticket_quantity
from models import ProofFile, Selection


@dataclass(frozen=True)
class TicketDescriptor:
    buyer_name: str
    buyer_email: str
    buyer_phone: str
    buyer_identification: str
    quantity: int
    zone_id: str
    zone_type: str
    zone_name: str
    price_usd: Decimal
    total_price: Decimal
    seat_ids: List[str] = field(default_factory=list)
    is_numbered: bool = False
    is_box_purchase: bool = False
    box_full_purchase: bool = False
    box_code: Optional[str] = None
    box_seats_quantity: Optional[int] = None

    @property
    def purchase_type(self):
        if not self.is_box_purchase:
            return 'regular'
        return 'full_box' if self.box_full_purchase else 'box_seats'

    def to_payload(self):
        data = asdict(self)
        data['price_usd'] = float(self.price_usd)
        data['total_price'] = float(self.total_price)
        return data


@dataclass(frozen=True)
class PagoMovilRequest:
    ticket: TicketDescriptor
    client_phone: str
    client_bank_code: str
    captcha: str = ''
    method: str = constants.PAGO_MOVIL


@dataclass(frozen=True)
class ManualPaymentRequest:
    ticket: TicketDescriptor
    subtype: str  # 'transfer' | 'zelle' | 'paypal'
    payment_method: str
    reference: Optional[str] = None
    bank_code: Optional[str] = None
    email_from: Optional[str] = None
    paypal_email: Optional[str] = None
    proof_file: Optional[ProofFile] = None
    captcha: str = ''
    method: str = 'manual'


PaymentRequest = Union[PagoMovilRequest, ManualPaymentRequest]


def build_ticket_descriptor(form, config=None) -> TicketDescriptor:
    """Descriptor de la compra a partir del snapshot congelado en el formulario."""
    snapshot = form.snapshot or Selection()
    zone = snapshot.zone
    seat_price, full_price = box_prices(config)
    total = total_price(zone, snapshot.seats, snapshot.general_quantity, seat_price, full_price)
    is_box = bool(zone and zone.is_box_purchase)
    quantity = ticket_quantity(zone, snapshot.seats, snapshot.general_quantity) if zone else form.quantity

    return TicketDescriptor(
        buyer_name=form.buyer_name,
        buyer_email=form.buyer_email,
        buyer_phone=form.buyer_phone,
        buyer_identification=form.buyer_identification,
        quantity=quantity,
        zone_id=zone.id if zone else form.zone_id,
        zone_type=zone.zone_type if zone else form.ticket_type,
        zone_name=zone.zone_name if zone else '',
        price_usd=unit_price(zone, seat_price),
        total_price=total,
        seat_ids=list(form.seat_ids),
        is_numbered=bool(zone and zone.is_numbered),
        is_box_purchase=is_box,
        box_full_purchase=bool(is_box and zone.box_full_purchase),
        box_code=zone.zone_code if is_box else None,
        box_seats_quantity=quantity if is_box else None,
    )


def build_payment_request(form, p2c, payment_data, proof_file=None, captcha_token='', config=None) -> PaymentRequest:
    ticket = build_ticket_descriptor(form, config)
    method = form.payment_method

    if method == constants.PAGO_MOVIL:
        return PagoMovilRequest(
            ticket=ticket,
            client_phone=p2c.client_phone,
            client_bank_code=p2c.client_bank_code,
            captcha=captcha_token or '',
        )

    if method in constants.MANUAL_SUBTYPES:
        return ManualPaymentRequest(
            ticket=ticket,
            subtype=constants.MANUAL_SUBTYPES[method],
            payment_method=method,
            reference=payment_data.reference or None,
            bank_code=payment_data.bank_code or None,
            email_from=payment_data.email_from or form.buyer_email,
            paypal_email=payment_data.paypal_email or None,
            proof_file=proof_file,
            captcha=captcha_token or '',
        )

    raise ValueError(f'Método de pago no soportado: {method}')


def initiation_payload(request: PagoMovilRequest):
    base = request.ticket.to_payload()
    return {
        **base,
        'payment_method': constants.PAGO_MOVIL,
        'client_phone': request.client_phone,
        'client_bank_code': request.client_bank_code,
        'captcha': request.captcha,
        'send_email': True,
        'tickets': [{
            **base,
            'ticket_type': request.ticket.zone_type,
            'purchase_type': request.ticket.purchase_type,
        }],
    }


def _form_value(value):
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (list, dict)):
        return json.dumps(value)
    return str(value)


def manual_payment_form(request: ManualPaymentRequest):
    """Campos y archivos del multipart para el endpoint de pago manual."""
    base = request.ticket.to_payload()
    fields = {
        **base,
        'payment_method': request.payment_method,
        'payment_subtype': request.subtype,
        'payment_reference': request.reference,
        'bank_code': request.bank_code,
        'email_from': request.email_from,
        'paypal_email': request.paypal_email,
        'captcha': request.captcha,
        'send_email': True,
        'tickets': [{
            **base,
            'ticket_type': request.ticket.zone_type,
            'purchase_type': request.ticket.purchase_type,
        }],
    }
    data = {key: _form_value(value) for key, value in fields.items() if value is not None}

    files = None
    if request.proof_file is not None:
        proof = request.proof_file
        files = {'proof': (proof.filename, proof.content, proof.mimetype)}
    return data, files
