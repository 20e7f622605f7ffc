import logging
import time
from datetime import datetime, timezone

import bleach

import compra.constants as constants
from compra.constants import ZONE_SELECTION, PAYMENT, P2C_CONFIRM
from compra.iframe_token import TokenGate, CaptchaGate, ParentChannel, ParentMessageType
from compra.inventory import box_availability, default_catalog, find_zone, zones_from_availability, summary_from_response, InventorySummary
from compra.payments import (PagoMovilRequest, ManualPaymentRequest, build_payment_request,
                             build_ticket_descriptor, initiation_payload, manual_payment_form)
from compra.pricing import box_prices, bs_amount, box_savings, purchase_description, selection_total, unit_price
from compra.selection import SelectionController
from compra.steps import (StepMachine, validate_personal_data, validate_zone_selection,
                          validate_payment, validate_p2c_reference)
from gateway_api.utils import GatewayError, mask
from models import (Bank, CommerceDetails, P2CData, PaymentData, PurchaseForm, TicketRecord,
                    Transaction, VoucherData, Zone, to_decimal)

VOUCHER_FIELDS = ('authId', 'terminal', 'lote', 'seqnum', 'voucher', 'control')


def clean_text(value):
    # ninguna etiqueta permitida: los datos viajan al backend y a los correos
    return bleach.clean(str(value or ''), tags=set(), strip=True).strip()


class PurchaseWizard:
    """Orquestador de la compra embebida.

    Todas las acciones retornan ``True``/``False`` y dejan el detalle en
    ``errors`` (por campo) y ``notice`` (mensaje general con un status HTTP
    sugerido). Ninguna falla de red o de parseo sale de aqui como excepcion.
    """

    def __init__(self, api_client, config=None, clock=time.time, on_success=None):
        self.api = api_client
        self.config = config or {}
        self.clock = clock
        self.on_success = on_success

        self.gate = TokenGate()
        self.captcha = CaptchaGate()
        self.channel = ParentChannel(clock)
        self.steps = StepMachine()
        self.selector = SelectionController(self.config)
        self.form = PurchaseForm()
        self.p2c = P2CData()
        self.payment_data = PaymentData()

        self.extra_zones = []
        self.boxes_detail = []
        self.banks = []
        self.exchange_rate = None
        self.inventory = InventorySummary()

        self.errors = {}
        self.notice = None
        self.is_submitting = False
        self.completed = False
        self.transaction = None
        self.voucher = None
        self.ticket = None
        self.ticket_details = None
        self.p2c_reference = ''

        self.captcha.subscribe(self._on_captcha_change)

    # --- utilidades internas ---

    def _on_captcha_change(self, token):
        if token:
            self.errors.pop('captcha', None)

    def _set_notice(self, level, message, status=200):
        self.notice = {'level': level, 'message': message, 'status': status}

    def fail(self, message, status):
        self._set_notice('error', message, status)
        return False

    def _now_iso(self):
        return datetime.fromtimestamp(self.clock(), timezone.utc).isoformat()

    def _stamp(self):
        return int(self.clock() * 1000)

    def _guard(self, *steps):
        """Precondiciones comunes de las acciones que mutan el wizard."""
        self.tick()
        if not self.gate.is_open:
            return self.fail(self.gate.reason or constants.MESSAGES['token_invalid'], 403)
        if self.is_submitting:
            return self.fail(constants.MESSAGES['already_submitting'], 409)
        if steps and self.steps.step not in steps:
            return self.fail('Acción no disponible en este paso', 409)
        return True

    @property
    def zones(self):
        return default_catalog(self.config) + list(self.extra_zones)

    # --- montaje ---

    def mount(self, token, origin=None):
        """Valida el token y carga inventario, bancos y tasa de cambio."""
        self.gate = TokenGate(token).load(self.api, self.channel, origin)
        if self.gate.info:
            self.captcha.required = self.gate.info.requires_captcha
            self.captcha.site_key = self.gate.info.captcha_site_key
        self.selector.max_tickets = self.gate.max_tickets

        if not self.gate.is_open:
            self._set_notice('error', self.gate.reason, 403)
            return False

        self.load_inventory()
        self.load_banks()
        self.load_exchange_rate()
        return True

    def load_inventory(self):
        try:
            self.inventory = summary_from_response(self.api.fetch_inventory())
        except GatewayError as e:
            # se mantiene el ultimo snapshot; es solo informativo
            logging.warning("Inventario no disponible: %s", e.message)
        try:
            zones, detail = zones_from_availability(self.api.fetch_availability())
        except GatewayError as e:
            logging.warning("Disponibilidad de boxes no disponible: %s", e.message)
            return
        self.extra_zones = [z for z in zones if z.id not in ('general', 'boxes')]
        self.boxes_detail = detail

    def load_banks(self):
        try:
            banks = self.api.fetch_banks()
        except GatewayError as e:
            logging.warning("Usando bancos por defecto: %s", e.message)
            banks = constants.DEFAULT_BANKS
        if not banks:
            logging.warning("Lista de bancos vacía, usando bancos por defecto")
            banks = constants.DEFAULT_BANKS
        self.banks = [Bank(code=b['code'], name=b['name']) for b in banks]

    def load_exchange_rate(self):
        try:
            rate = self.api.fetch_exchange_rate()
        except GatewayError as e:
            logging.warning("Usando tasa de cambio por defecto: %s", e.message)
            rate = None
        self.exchange_rate = rate if rate is not None else constants.DEFAULT_EXCHANGE_RATE

    # --- datos personales y de pago ---

    def update_personal(self, **fields):
        if not self._guard():
            return False
        for name, value in fields.items():
            if name not in PurchaseForm.BUYER_FIELDS:
                continue
            setattr(self.form, name, clean_text(value))
            self.errors.pop(name, None)
        return True

    def update_payment(self, payment_method=None, p2c=None, payment=None):
        if not self._guard():
            return False
        if payment_method is not None:
            self.form.payment_method = payment_method
            self.errors.pop('payment_method', None)
        for name, value in (p2c or {}).items():
            if hasattr(self.p2c, name):
                setattr(self.p2c, name, clean_text(value))
                self.errors.pop(name, None)
        for name, value in (payment or {}).items():
            if hasattr(self.payment_data, name):
                setattr(self.payment_data, name, clean_text(value))
                self.errors.pop(name, None)
        return True

    def captcha_verified(self, token):
        if not self._guard():
            return False
        self.captcha.verify(token)
        return True

    def captcha_expired(self):
        self.captcha.expire()
        return True

    # --- seleccion ---

    def _selection_changed(self):
        for key in ('zone', 'seats', 'quantity'):
            self.errors.pop(key, None)
        return True

    def select_preferencial(self):
        if not self._guard(ZONE_SELECTION, PAYMENT):
            return False
        self.selector.select_preferencial()
        return self._selection_changed()

    def select_box(self, code):
        if not self._guard(ZONE_SELECTION, PAYMENT):
            return False
        available = None
        detail = box_availability(self.boxes_detail, code)
        if detail is not None:
            status, available = detail
            if status != 'available' or available < 1:
                return self.fail(constants.MESSAGES['box_unavailable'], 400)
        try:
            self.selector.select_box(code, available)
        except ValueError as e:
            return self.fail(str(e), 400)
        return self._selection_changed()

    def select_zone(self, zone_id):
        if not self._guard(ZONE_SELECTION, PAYMENT):
            return False
        zone = find_zone(self.zones, zone_id)
        if zone is None:
            return self.fail(f'Zona desconocida: {zone_id}', 400)
        if zone.is_box_purchase:
            return self.select_box(zone.zone_code)
        self.selector.select_zone(zone)
        return self._selection_changed()

    def set_full_box(self, full):
        if not self._guard(ZONE_SELECTION, PAYMENT):
            return False
        if full and self.selector.selected_box and not self.selector.box_complete:
            return self.fail(constants.MESSAGES['box_incomplete'], 400)
        if not self.selector.set_full_box(full):
            return self.fail('Debe seleccionar un box primero', 400)
        return self._selection_changed()

    def change_quantity(self, action, value=None):
        if not self._guard(ZONE_SELECTION, PAYMENT):
            return False
        if action == 'increment':
            self.selector.increment()
        elif action == 'decrement':
            self.selector.decrement()
        elif action == 'set':
            try:
                self.selector.set_quantity(int(value))
            except (TypeError, ValueError):
                return self.fail('Cantidad inválida', 400)
        else:
            return self.fail(f'Acción desconocida: {action}', 400)
        return self._selection_changed()

    def toggle_seat(self, seat_id):
        if not self._guard(ZONE_SELECTION, PAYMENT):
            return False
        rejection = self.selector.toggle_seat(seat_id)
        if rejection:
            return self.fail(rejection, 400)
        return self._selection_changed()

    # --- navegacion ---

    def _validate_step(self, step):
        if step == constants.PERSONAL_DATA:
            return validate_personal_data(self.form)
        if step == ZONE_SELECTION:
            return validate_zone_selection(self.selector.selection, self.gate.max_tickets)
        return {}

    def _snapshot_selection(self):
        selection = self.selector.selection.copy()
        zone = selection.zone
        self.form.snapshot = selection
        self.form.quantity = selection.quantity
        self.form.ticket_type = zone.zone_type if zone else 'general'
        self.form.zone_id = zone.id if zone else ''
        self.form.seat_ids = [s.id for s in selection.seats]

    def next_step(self):
        if not self._guard(constants.PERSONAL_DATA, ZONE_SELECTION):
            return False
        errors = self._validate_step(self.steps.step)
        if errors:
            self.errors = errors
            return self.fail('Por favor complete todos los campos requeridos', 400)
        leaving = self.steps.step
        self.steps.next(errors)
        if leaving == ZONE_SELECTION:
            self._snapshot_selection()
        self.errors = {}
        self.notice = None
        return True

    def prev_step(self):
        if not self._guard(ZONE_SELECTION, PAYMENT):
            return False
        self.steps.prev()
        self.errors = {}
        self.notice = None
        return True

    # --- envio del pago ---

    def submit(self, proof_file=None):
        if not self._guard(PAYMENT):
            return False
        if self.completed:
            return self.fail('El pago ya fue enviado', 409)
        if not self.gate.token:
            return self.fail(constants.MESSAGES['token_required'], 403)

        errors = validate_payment(
            self.form.payment_method, self.p2c, self.payment_data, proof_file,
            self.captcha.token, self.captcha.required, self.gate.allowed_method_values,
        )
        if self.form.snapshot is None or self.form.snapshot.zone is None:
            errors['zone'] = 'Debe seleccionar un tipo de entrada'
        if errors:
            self.errors = errors
            return self.fail('Por favor complete todos los campos requeridos', 400)

        request = build_payment_request(self.form, self.p2c, self.payment_data, proof_file,
                                        self.captcha.token, self.config)
        self.is_submitting = True
        try:
            return self._process(request)
        finally:
            self.is_submitting = False

    def _process(self, request):
        if isinstance(request, PagoMovilRequest):
            return self._initiate_p2c(request)
        if isinstance(request, ManualPaymentRequest):
            return self._submit_manual(request)
        raise TypeError(f'Solicitud de pago desconocida: {type(request).__name__}')

    def _payment_failed(self, message, status):
        # el token de captcha ya fue consumido por el backend
        self.captcha.expire()
        self.channel.post(ParentMessageType.PAYMENT_ERROR, message=message)
        return self.fail(message, status)

    def _error_message(self, error: GatewayError):
        return error.message if error.business else constants.MESSAGES['connection_error']

    def _box_info(self, ticket):
        return {
            'isBoxPurchase': ticket.is_box_purchase,
            'boxFullPurchase': ticket.box_full_purchase,
            'boxCode': ticket.box_code,
        }

    def _initiate_p2c(self, request: PagoMovilRequest):
        payload = initiation_payload(request)
        try:
            data = self.api.initiate_p2c(payload, self.gate.headers())
        except GatewayError as e:
            return self._payment_failed(self._error_message(e), e.status_code)

        if not data.get('success') or not data.get('transactionId'):
            return self._payment_failed(data.get('message') or constants.MESSAGES['processing_error'], 502)

        ticket = request.ticket
        details = data.get('paymentDetails') or {}
        self.transaction = Transaction(
            transaction_id=str(data['transactionId']),
            amount_usd=ticket.total_price,
            amount_bs=bs_amount(ticket.total_price, self.exchange_rate),
            exchange_rate=self.exchange_rate,
            commerce=CommerceDetails(
                commerce_phone=details.get('commerce_phone'),
                commerce_bank_code=details.get('commerce_bank_code'),
                commerce_bank_name=details.get('commerce_bank_name'),
                commerce_rif=details.get('commerce_rif'),
                invoice_number=data.get('invoiceNumber'),
                control_number=data.get('controlNumber'),
                amount=details.get('amount'),
            ),
        )
        self.ticket_details = {
            'zone_name': ticket.zone_name,
            'quantity': ticket.quantity,
            'price_per_ticket': float(ticket.total_price if ticket.box_full_purchase else ticket.price_usd),
            'seat_numbers': [s.seat_number for s in self.form.snapshot.seats],
            'ticket_type': ticket.zone_type,
            'purchase_description': purchase_description(self.form.snapshot.zone, ticket.quantity),
            **self._box_info(ticket),
        }
        self.voucher = None
        self.p2c_reference = ''
        self.steps.enter_p2c_confirm()
        self.errors = {}
        self._set_notice('success', constants.MESSAGES['payment_initiated'])
        logging.info("P2C iniciado: transacción %s", self.transaction.transaction_id)
        self.channel.post(ParentMessageType.PAYMENT_INITIATED,
                          transactionId=self.transaction.transaction_id, **self._box_info(ticket))
        return True

    def _ticket_record(self, ticket, payment_method, payment_status, data, fallback_id, voucher=None):
        tickets = data.get('tickets') or []
        first = tickets[0] if tickets and isinstance(tickets[0], dict) else {}
        stamp = self._stamp()
        return TicketRecord(
            id=str(data.get('ticketId') or first.get('id') or fallback_id or f'temp-{stamp}'),
            ticket_number=str(data.get('ticketNumber') or first.get('ticket_number') or f'TK-{stamp}'),
            buyer_name=ticket.buyer_name,
            buyer_email=ticket.buyer_email,
            buyer_phone=ticket.buyer_phone,
            buyer_identification=ticket.buyer_identification,
            payment_method=payment_method,
            payment_status=payment_status,
            ticket_status='vendido',
            zone_name=ticket.zone_name,
            ticket_price=ticket.price_usd,
            quantity=ticket.quantity,
            total_price=ticket.total_price,
            created_at=self._now_iso(),
            email_sent=data.get('emailSent') is not False,
            is_box_purchase=ticket.is_box_purchase,
            box_full_purchase=ticket.box_full_purchase,
            box_code=ticket.box_code,
            voucher_data=voucher,
        )

    def _finish(self, ticket_record):
        self.ticket = ticket_record
        self.completed = True
        if self.on_success:
            try:
                self.on_success(ticket_record)
            except Exception:
                logging.exception("Error en el callback on_success")
        self.steps.schedule_reset(self.clock(), float(self.config.get('SUCCESS_RESET_SECONDS', 3)))

    def _submit_manual(self, request: ManualPaymentRequest):
        data, files = manual_payment_form(request)
        try:
            response = self.api.submit_manual_payment(data, files, self.gate.headers())
        except GatewayError as e:
            return self._payment_failed(self._error_message(e), e.status_code)

        if not response.get('success'):
            return self._payment_failed(response.get('message') or constants.MESSAGES['processing_error'], 502)

        ticket = request.ticket
        transaction_id = response.get('transactionId') or (response.get('transaction') or {}).get('id')
        record = self._ticket_record(ticket, request.payment_method, 'pendiente', response, transaction_id)

        if ticket.is_box_purchase and ticket.box_full_purchase:
            message = f"Box completo reservado. {response.get('message') or 'Recibirá un email de confirmación.'}"
        elif ticket.is_box_purchase:
            message = f"{purchase_description(self.form.snapshot.zone, ticket.quantity)} reservado(s). {response.get('message') or 'Recibirá un email de confirmación.'}"
        else:
            message = response.get('message') or constants.MESSAGES['verification_pending']
        self.errors = {}
        self._set_notice('success', message)

        self.channel.post(ParentMessageType.PAYMENT_SUBMITTED,
                          transactionId=transaction_id,
                          payment_method=request.payment_method,
                          ticketData=record.to_dict(),
                          **self._box_info(ticket))
        self._finish(record)
        return True

    # --- confirmacion P2C ---

    def confirm_p2c(self, reference):
        if not self._guard(P2C_CONFIRM):
            return False
        if self.completed:
            return self.fail('El pago ya fue confirmado', 409)

        reference = (reference or '').strip()
        # se conserva lo ingresado para reintentar sin volver a escribirlo
        self.p2c_reference = reference
        reference_error = validate_p2c_reference(reference)
        if reference_error:
            self.errors = {'reference': reference_error}
            return self.fail(reference_error, 400)

        payload = {
            'transactionId': self.transaction.transaction_id,
            'reference': reference,
            'identification': self.form.buyer_identification,
            'send_email': True,
        }
        self.is_submitting = True
        try:
            data = self.api.confirm_p2c(payload, self.gate.headers())
        except GatewayError as e:
            return self._payment_failed(e.message if e.business else constants.MESSAGES['confirm_error'], e.status_code)
        finally:
            self.is_submitting = False

        if not data.get('success'):
            return self._payment_failed(data.get('message') or constants.MESSAGES['confirm_error'], 502)

        if any(data.get(k) for k in VOUCHER_FIELDS):
            self.voucher = VoucherData(
                reference=data.get('reference') or reference,
                **{k: data.get(k) for k in VOUCHER_FIELDS},
            )
        self.transaction.reference = reference

        ticket = build_ticket_descriptor(self.form, self.config)
        record = self._ticket_record(ticket, constants.PAGO_MOVIL, 'confirmado', data,
                                     self.transaction.transaction_id,
                                     voucher=data.get('voucher') or (self.voucher.to_dict() if self.voucher else None))
        self.errors = {}
        self._set_notice('success', data.get('message') or constants.MESSAGES['payment_confirmed'])
        logging.info("P2C confirmado: transacción %s ref %s", self.transaction.transaction_id, mask(reference))

        self.channel.post(ParentMessageType.PAYMENT_COMPLETED,
                          transactionId=self.transaction.transaction_id,
                          tickets=data.get('tickets') or [],
                          voucher=data.get('voucher'),
                          ticketData=record.to_dict())
        self._finish(record)
        return True

    def cancel_p2c(self):
        if not self._guard(P2C_CONFIRM):
            return False
        if self.completed:
            return self.fail('El pago ya fue confirmado', 409)

        transaction_id = self.transaction.transaction_id if self.transaction else None
        if transaction_id and str(self.config.get('P2C_CANCEL_NOTIFY', False)).lower() == 'true':
            try:
                self.api.cancel_p2c(transaction_id, self.gate.headers())
            except GatewayError as e:
                logging.warning("No se pudo anular la transacción %s: %s", transaction_id, e.message)

        self.transaction = None
        self.voucher = None
        self.ticket_details = None
        self.p2c_reference = ''
        self.errors = {}
        self.notice = None
        self.steps.cancel_p2c()
        return True

    # --- reinicio ---

    def tick(self):
        """Aplica el reinicio pendiente tras un pago exitoso, si ya se cumplio el plazo."""
        if self.steps.reset_due(self.clock()):
            self.reset()
            return True
        return False

    def reset(self):
        self.steps.reset()
        self.selector.clear()
        self.form = PurchaseForm()
        self.p2c = P2CData()
        self.payment_data = PaymentData()
        # los tokens de captcha son de un solo uso
        self.captcha.token = ''
        self.errors = {}
        self.notice = None
        self.completed = False
        self.transaction = None
        self.voucher = None
        self.ticket_details = None
        self.p2c_reference = ''

    # --- vista y sesion ---

    def totals(self):
        if self.steps.step == P2C_CONFIRM and self.transaction:
            total = self.transaction.amount_usd
            selection = self.form.snapshot
        elif self.steps.step >= PAYMENT and self.form.snapshot is not None:
            selection = self.form.snapshot
            total = selection_total(selection, self.config)
        else:
            selection = self.selector.selection
            total = selection_total(selection, self.config)

        seat_price, full_price = box_prices(self.config)
        zone = selection.zone
        return {
            'unit_price': float(unit_price(zone, seat_price)),
            'quantity': selection.quantity,
            'total_usd': float(total),
            'total_bs': bs_amount(total, self.exchange_rate),
            'description': purchase_description(zone, selection.quantity),
            'box_savings': float(box_savings(seat_price, full_price)),
        }

    def view(self):
        selector = self.selector
        return {
            'step': self.steps.step,
            'step_name': self.steps.name,
            'blocked': not self.gate.is_open,
            'token': {'status': self.gate.status, 'reason': self.gate.reason},
            'captcha': {
                'required': self.captcha.required,
                'site_key': self.captcha.site_key,
                'satisfied': self.captcha.satisfied,
                'script_url': self.config.get('CAPTCHA_SCRIPT_URL', constants.CAPTCHA_SCRIPT_URL),
            },
            'payment_methods': self.gate.payment_methods() if self.gate.is_open else [],
            'banks': [b.to_dict() for b in self.banks],
            'exchange_rate': float(self.exchange_rate) if self.exchange_rate is not None else None,
            'inventory': self.inventory.to_dict(),
            'zones': [z.to_dict() for z in self.zones],
            'boxes': self.boxes_detail,
            'selection': {
                'zone_type': selector.zone_type,
                'selected_box': selector.selected_box,
                'box_quantity': selector.box_quantity,
                'box_available': selector.box_available,
                'purchase_full_box': selector.purchase_full_box,
                'general_quantity': selector.selection.general_quantity,
                'zone': selector.selection.zone.to_dict() if selector.selection.zone else None,
                'seats': [s.to_dict() for s in selector.selection.seats],
                'available_seats': [s.to_dict() for s in selector.available_seats],
            },
            'totals': self.totals(),
            'form': {k: v for k, v in self.form.to_dict().items() if k != 'snapshot'},
            'p2c': self.p2c.to_dict(),
            'payment_data': self.payment_data.to_dict(),
            'errors': self.errors,
            'notice': self.notice,
            'is_submitting': self.is_submitting,
            'transaction': self.transaction.to_dict() if self.transaction else None,
            'ticket_details': self.ticket_details,
            'p2c_reference': self.p2c_reference,
            'voucher': self.voucher.to_dict() if self.voucher else None,
            'ticket': self.ticket.to_dict() if self.ticket else None,
        }

    def to_state(self):
        return {
            'gate': self.gate.to_dict(),
            'captcha': self.captcha.to_dict(),
            'steps': self.steps.to_dict(),
            'selector': self.selector.to_dict(),
            'form': self.form.to_dict(),
            'p2c': self.p2c.to_dict(),
            'payment_data': self.payment_data.to_dict(),
            'extra_zones': [z.to_dict() for z in self.extra_zones],
            'boxes_detail': self.boxes_detail,
            'banks': [b.to_dict() for b in self.banks],
            'exchange_rate': str(self.exchange_rate) if self.exchange_rate is not None else None,
            'inventory': self.inventory.to_dict(),
            'errors': self.errors,
            'completed': self.completed,
            'transaction': self.transaction.to_dict() if self.transaction else None,
            'voucher': self.voucher.to_dict() if self.voucher else None,
            'ticket': self.ticket.to_dict() if self.ticket else None,
            'ticket_details': self.ticket_details,
            'p2c_reference': self.p2c_reference,
        }

    @classmethod
    def from_state(cls, state, api_client, config=None, clock=time.time, on_success=None):
        wizard = cls(api_client, config, clock, on_success)
        if not state:
            return wizard
        wizard.gate = TokenGate.from_dict(state.get('gate'))
        wizard.captcha = CaptchaGate.from_dict(state.get('captcha'))
        wizard.captcha.subscribe(wizard._on_captcha_change)
        wizard.steps = StepMachine.from_dict(state.get('steps'))
        wizard.selector = SelectionController.from_dict(state.get('selector'), wizard.config)
        wizard.form = PurchaseForm.from_dict(state.get('form'))
        wizard.p2c = P2CData.from_dict(state.get('p2c') or {})
        wizard.payment_data = PaymentData.from_dict(state.get('payment_data') or {})
        wizard.extra_zones = [Zone.from_dict(z) for z in state.get('extra_zones') or []]
        wizard.boxes_detail = state.get('boxes_detail') or []
        wizard.banks = [Bank.from_dict(b) for b in state.get('banks') or []]
        rate = state.get('exchange_rate')
        wizard.exchange_rate = to_decimal(rate) if rate is not None else None
        wizard.inventory = InventorySummary.from_dict(state.get('inventory') or {})
        wizard.errors = dict(state.get('errors') or {})
        wizard.completed = bool(state.get('completed'))
        wizard.transaction = Transaction.from_dict(state.get('transaction'))
        wizard.voucher = VoucherData.from_dict(state.get('voucher'))
        wizard.ticket = TicketRecord.from_dict(state.get('ticket'))
        wizard.ticket_details = state.get('ticket_details')
        wizard.p2c_reference = state.get('p2c_reference') or ''
        return wizard
