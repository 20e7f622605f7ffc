import logging
from decimal import Decimal, InvalidOperation

import compra.constants as constants


class GatewayError(Exception):
    """Falla de una llamada al backend, ya traducida a un mensaje para el usuario.

    ``business`` indica que el servidor rechazo la operacion con un mensaje
    propio (inventario insuficiente, captcha fallido...); en ese caso el mensaje
    se muestra tal cual.
    """

    def __init__(self, message, status_code=502, business=False):
        self.message = message
        self.status_code = status_code
        self.business = business
        super().__init__(self.message)


def mask(value, visible=4):
    # nunca registrar tokens o referencias completas
    if not value:
        return ''
    value = str(value)
    if len(value) <= visible:
        return '*' * len(value)
    return '*' * (len(value) - visible) + value[-visible:]


def parse_json_response(response, fallback_message=None):
    """Valida y decodifica una respuesta del backend.

    Cualquier respuesta que no sea JSON, venga vacia o tenga un status fuera de
    2xx termina en ``GatewayError``; nunca se propaga un error de parseo.
    """
    fallback_message = fallback_message or constants.MESSAGES['connection_error']
    content_type = response.headers.get('Content-Type', '')

    if 'application/json' not in content_type:
        logging.error("Respuesta no JSON del backend (status=%s, content-type=%s)", response.status_code, content_type)
        raise GatewayError(fallback_message, response.status_code if not response.ok else 502)

    if not response.text.strip():
        logging.error("Respuesta vacía del backend (status=%s)", response.status_code)
        raise GatewayError(fallback_message, response.status_code if not response.ok else 502)

    try:
        data = response.json()
    except ValueError:
        logging.exception("JSON inválido en la respuesta del backend")
        raise GatewayError(fallback_message, 502)

    if not response.ok:
        message = data.get('message') if isinstance(data, dict) else None
        logging.warning("Backend respondió status=%s message=%s", response.status_code, message)
        if message:
            raise GatewayError(message, response.status_code, business=True)
        raise GatewayError(fallback_message, response.status_code)

    return data


def parse_exchange_rate(data):
    """Extrae la tasa de las distintas formas en que la devuelve el backend."""
    if isinstance(data, (int, float)) and not isinstance(data, bool):
        raw = data
    elif isinstance(data, dict):
        raw = next((data[k] for k in ('rate', 'exchangeRate', 'exchange_rate') if data.get(k) is not None), None)
    else:
        raw = None

    if raw is None:
        return None
    try:
        rate = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        return None
    return rate if rate > 0 else None


def parse_banks(data):
    if isinstance(data, dict) and isinstance(data.get('banks'), list):
        banks = data['banks']
    elif isinstance(data, list):
        banks = data
    else:
        logging.warning("Formato inesperado en la lista de bancos: %s", type(data).__name__)
        return []
    return [
        {'code': str(bank['code']), 'name': bank.get('name') or str(bank['code'])}
        for bank in banks
        if isinstance(bank, dict) and bank.get('code') and bank.get('is_active') is not False
    ]


def format_amount(amount) -> str:
    """
    Format amount to string with 2 decimal places.

    Examples:
        130 -> "130.00"
        130.5 -> "130.50"
        "130" -> "130.00"
    """
    try:
        return f"{Decimal(str(amount)):.2f}"
    except (InvalidOperation, ValueError, TypeError):
        return str(amount)
