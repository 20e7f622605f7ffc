from flask import request, jsonify, Blueprint, current_app, session, g
import logging
import time
from functools import wraps
from uuid import uuid4

import redis
from werkzeug.utils import secure_filename

import compra.constants as constants
from compra.services import PurchaseWizard
from gateway_api.client import TicketsApiClient
from gateway_api.utils import mask
from models import ProofFile, PurchaseForm

compra = Blueprint('compra', __name__)

# estado del wizard en la sesion del servidor (Flask-Session)
SESSION_KEY = 'compra_wizard'


def api_client():
    client = current_app.extensions.get('tickets_api')
    if client is None:
        client = TicketsApiClient.from_config(current_app.config)
        current_app.extensions['tickets_api'] = client
    return client


def load_wizard(fresh=False):
    state = None if fresh else session.get(SESSION_KEY)
    return PurchaseWizard.from_state(state, api_client(), current_app.config, clock=time.time)


def respond(wizard, ok):
    session[SESSION_KEY] = wizard.to_state()
    notice = wizard.notice or {}
    status_code = 200
    if not ok:
        status_code = notice.get('status') or 400
        # cualquier falla del backend se reporta como 502
        if status_code >= 500:
            status_code = 502
    return jsonify({
        'status': 'ok' if ok else 'error',
        'message': notice.get('message'),
        'state': wizard.view(),
        'messages': wizard.channel.drain(),
    }), status_code


def wizard_action(func):
    """Carga el wizard de la sesion, ejecuta la accion y guarda el resultado."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            wizard = load_wizard()
            data = request.get_json(silent=True) or {}
            ok = func(wizard, data, *args, **kwargs)
            return respond(wizard, ok)
        except Exception:
            logging.exception("Error inesperado en %s", request.path)
            return jsonify({'status': 'error', 'message': 'Error interno del servidor'}), 500
    return wrapper


# libera el candado solo si sigue siendo nuestro (pudo expirar y tomarlo otro request)
RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


def acquire_submit_lock():
    """Candado por sesion en Redis (SET NX EX) para los POST de pago.

    Funciona entre procesos. Se libera en el teardown, despues de que
    Flask-Session guardo el estado, para que el siguiente request vea el resultado.
    """
    client = current_app.extensions['redis']
    key = f'compra:envio:{session.sid}'
    owner = str(uuid4())
    if not client.set(key, owner, nx=True, ex=current_app.config.get('SUBMIT_LOCK_SECONDS', 60)):
        logging.warning("Envío duplicado rechazado para la sesión %s", mask(session.sid))
        return False
    g.submit_lock = (key, owner)
    return True


@compra.teardown_request
def release_submit_lock(exc):
    lock = g.pop('submit_lock', None)
    if lock is None:
        return
    key, owner = lock
    try:
        current_app.extensions['redis'].eval(RELEASE_SCRIPT, 1, key, owner)
    except redis.exceptions.RedisError:
        # el candado expira solo
        logging.exception("No se pudo liberar el candado %s", key)


def submit_lock(func):
    """Rechaza con 409 un segundo envio de la misma sesion antes de cargar el wizard."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            acquired = acquire_submit_lock()
        except redis.exceptions.RedisError:
            logging.exception("Redis no disponible en %s", request.path)
            return jsonify({'status': 'error', 'message': constants.MESSAGES['connection_error']}), 503
        if not acquired:
            return jsonify({'status': 'error', 'message': constants.MESSAGES['already_submitting']}), 409
        return func(*args, **kwargs)
    return wrapper


def proof_from_request():
    upload = request.files.get('proof')
    if upload is None or not upload.filename:
        return None
    return ProofFile(
        filename=secure_filename(upload.filename),
        content=upload.read(),
        mimetype=upload.mimetype,
    )


@compra.route('/session', methods=['POST'])
def start_session():
    """Monta un wizard nuevo para el token del iframe."""
    try:
        data = request.get_json(silent=True) or {}
        token = (data.get('token') or request.args.get('token') or '').strip()
        origin = data.get('origin') or request.headers.get('Origin')

        wizard = load_wizard(fresh=True)
        ok = wizard.mount(token, origin)
        return respond(wizard, ok)
    except Exception:
        logging.exception("Error al iniciar la sesión del iframe")
        return jsonify({'status': 'error', 'message': 'Error interno del servidor'}), 500


@compra.route('/state', methods=['GET'])
@wizard_action
def get_state(wizard, data):
    wizard.tick()
    return True


@compra.route('/personal', methods=['POST'])
@wizard_action
def update_personal(wizard, data):
    fields = {k: data[k] for k in PurchaseForm.BUYER_FIELDS if k in data}
    return wizard.update_personal(**fields)


@compra.route('/zone', methods=['POST'])
@wizard_action
def select_zone(wizard, data):
    zone_type = data.get('zone_type')
    if zone_type == 'preferencial':
        return wizard.select_preferencial()
    if zone_type == 'box':
        return wizard.select_box(data.get('box'))
    if zone_type == 'zone':
        return wizard.select_zone(data.get('zone_id'))
    return wizard.fail(f'Tipo de zona desconocido: {zone_type}', 400)


@compra.route('/box-mode', methods=['POST'])
@wizard_action
def box_mode(wizard, data):
    return wizard.set_full_box(bool(data.get('full')))


@compra.route('/quantity', methods=['POST'])
@wizard_action
def quantity(wizard, data):
    return wizard.change_quantity(data.get('action'), data.get('value'))


@compra.route('/seat', methods=['POST'])
@wizard_action
def toggle_seat(wizard, data):
    return wizard.toggle_seat(data.get('seat_id'))


@compra.route('/next', methods=['POST'])
@wizard_action
def next_step(wizard, data):
    return wizard.next_step()


@compra.route('/prev', methods=['POST'])
@wizard_action
def prev_step(wizard, data):
    return wizard.prev_step()


@compra.route('/payment', methods=['POST'])
@wizard_action
def update_payment(wizard, data):
    return wizard.update_payment(data.get('payment_method'), data.get('p2c'), data.get('payment'))


@compra.route('/captcha', methods=['POST', 'DELETE'])
@wizard_action
def captcha(wizard, data):
    if request.method == 'DELETE':
        return wizard.captcha_expired()
    return wizard.captcha_verified(data.get('token'))


@compra.route('/submit', methods=['POST'])
@submit_lock
@wizard_action
def submit(wizard, data):
    if request.files or request.form:
        # multipart: campos planos + comprobante
        form = request.form
        payment = {k: form[k] for k in ('bank_code', 'reference', 'email_from', 'paypal_email') if k in form}
        p2c = {k: form[k] for k in ('client_phone', 'client_bank_code') if k in form}
        if form.get('payment_method') or payment or p2c:
            if not wizard.update_payment(form.get('payment_method'), p2c, payment):
                return False
    elif data.get('payment_method') or data.get('p2c') or data.get('payment'):
        if not wizard.update_payment(data.get('payment_method'), data.get('p2c'), data.get('payment')):
            return False
    return wizard.submit(proof_from_request())


@compra.route('/p2c/confirm', methods=['POST'])
@submit_lock
@wizard_action
def confirm_p2c(wizard, data):
    return wizard.confirm_p2c(data.get('reference'))


@compra.route('/p2c/cancel', methods=['POST'])
@wizard_action
def cancel_p2c(wizard, data):
    return wizard.cancel_p2c()
