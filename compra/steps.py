"""Maquina de pasos del wizard y validaciones por paso.

PERSONAL_DATA(1) -> ZONE_SELECTION(2) -> PAYMENT(3) -> [P2C_CONFIRM]

Solo se avanza de a un paso y solo si el validador del paso actual no
retorna errores. P2C_CONFIRM no cuenta como paso lineal: se entra solo tras
iniciar un pago movil y se sale confirmando (reset) o cancelando (vuelve a PAYMENT).
"""
import compra.constants as constants
from compra.constants import PERSONAL_DATA, ZONE_SELECTION, PAYMENT, P2C_CONFIRM

STEP_NAMES = {
    PERSONAL_DATA: 'PERSONAL_DATA',
    ZONE_SELECTION: 'ZONE_SELECTION',
    PAYMENT: 'PAYMENT',
    P2C_CONFIRM: 'P2C_CONFIRM',
}


class StepMachine:

    def __init__(self, step=PERSONAL_DATA, reset_at=None):
        self.step = step
        # instante (epoch) en que se debe volver al paso 1 tras un pago exitoso
        self.reset_at = reset_at

    @property
    def name(self):
        return STEP_NAMES[self.step]

    def next(self, errors) -> bool:
        if errors or self.step not in (PERSONAL_DATA, ZONE_SELECTION):
            return False
        self.step += 1
        return True

    def prev(self) -> bool:
        if self.step not in (ZONE_SELECTION, PAYMENT):
            return False
        self.step -= 1
        return True

    def enter_p2c_confirm(self) -> bool:
        if self.step != PAYMENT:
            return False
        self.step = P2C_CONFIRM
        return True

    def cancel_p2c(self) -> bool:
        if self.step != P2C_CONFIRM:
            return False
        self.step = PAYMENT
        return True

    def schedule_reset(self, now, delay):
        self.reset_at = now + delay

    def reset_due(self, now) -> bool:
        return self.reset_at is not None and now >= self.reset_at

    def reset(self):
        self.step = PERSONAL_DATA
        self.reset_at = None

    def to_dict(self):
        return {'step': self.step, 'reset_at': self.reset_at}

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(step=int(data.get('step') or PERSONAL_DATA), reset_at=data.get('reset_at'))


# --- validaciones ---

def _too_short(value, rule):
    return not value or len(value.strip()) < constants.VALIDATION_RULES[rule]['min_length']


def _no_match(value, rule):
    return not value or not constants.VALIDATION_RULES[rule]['pattern'].match(value)


def _message(rule):
    return constants.VALIDATION_RULES[rule]['message']


def validate_personal_data(form):
    errors = {}
    if _too_short(form.buyer_name, 'buyer_name'):
        errors['buyer_name'] = _message('buyer_name')
    if _too_short(form.buyer_identification, 'buyer_identification'):
        errors['buyer_identification'] = _message('buyer_identification')
    if _no_match(form.buyer_email, 'buyer_email'):
        errors['buyer_email'] = _message('buyer_email')
    if _too_short(form.buyer_phone, 'buyer_phone'):
        errors['buyer_phone'] = _message('buyer_phone')
    return errors


def validate_zone_selection(selection, max_tickets=None):
    errors = {}
    zone = selection.zone
    if zone is None:
        errors['zone'] = 'Debe seleccionar un tipo de entrada'
    elif zone.is_numbered and not zone.is_box_purchase and not selection.seats:
        errors['seats'] = 'Debe seleccionar al menos un asiento'
    elif selection.quantity < constants.PURCHASE_LIMITS['min_tickets']:
        errors['quantity'] = 'Debe seleccionar al menos una entrada'
    elif max_tickets and selection.quantity > max_tickets:
        errors['quantity'] = constants.MESSAGES['max_tickets'].format(max=max_tickets)
    return errors


def validate_proof_file(proof_file, max_size_mb=constants.PROOF_MAX_SIZE_MB):
    if proof_file is None:
        return 'Archivo es requerido'
    if proof_file.size > max_size_mb * 1024 * 1024:
        return f'El archivo no debe superar {max_size_mb}MB'
    if proof_file.mimetype not in constants.PROOF_ALLOWED_TYPES:
        return 'Solo se permiten imágenes (JPG, PNG) o PDF'
    return None


def validate_payment(payment_method, p2c, payment_data, proof_file=None,
                     captcha_token='', requires_captcha=False, allowed_methods=None):
    errors = {}
    known = [m['value'] for m in constants.PAYMENT_METHODS]

    if not payment_method:
        errors['payment_method'] = 'Seleccione un método de pago'
    elif payment_method not in known:
        errors['payment_method'] = 'Método de pago no soportado'
    elif allowed_methods and payment_method not in allowed_methods:
        errors['payment_method'] = 'Método de pago no habilitado para este formulario'

    if payment_method == constants.PAGO_MOVIL:
        if _no_match(p2c.client_phone, 'client_phone'):
            errors['client_phone'] = _message('client_phone')
        if not p2c.client_bank_code:
            errors['client_bank_code'] = 'Banco es requerido'

    elif payment_method == constants.TRANSFERENCIA:
        if not payment_data.bank_code:
            errors['bank_code'] = 'Banco es requerido'
        if not payment_data.reference:
            errors['reference'] = 'Referencia es requerida'
        proof_error = validate_proof_file(proof_file)
        if proof_error:
            errors['proof_file'] = proof_error

    elif payment_method == constants.ZELLE:
        if _no_match(payment_data.email_from, 'buyer_email'):
            errors['email_from'] = 'Email válido es requerido'
        if not payment_data.reference:
            errors['reference'] = 'Número de confirmación es requerido'
        proof_error = validate_proof_file(proof_file)
        if proof_error:
            errors['proof_file'] = proof_error

    elif payment_method == constants.PAYPAL:
        if _no_match(payment_data.paypal_email, 'buyer_email'):
            errors['paypal_email'] = 'Email de PayPal es requerido'

    if requires_captcha and not captcha_token:
        errors['captcha'] = 'Por favor complete el captcha'

    return errors


def validate_p2c_reference(reference):
    if not reference:
        return constants.MESSAGES['reference_required']
    if _no_match(reference.strip(), 'payment_reference'):
        return _message('payment_reference')
    return None
