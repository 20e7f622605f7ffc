"""Token de acceso del iframe, captcha y mensajes hacia la pagina contenedora."""
import enum
import logging
import time

import compra.constants as constants
from gateway_api.utils import GatewayError
from models import TokenInfo

MESSAGE_SOURCE = 'ticket-purchase-iframe'
MESSAGE_VERSION = 1
TOKEN_HEADER = 'X-Iframe-Token'


class ParentMessageType(str, enum.Enum):
    TOKEN_INVALID = 'TOKEN_INVALID'
    TOKEN_ERROR = 'TOKEN_ERROR'
    PAYMENT_INITIATED = 'PAYMENT_INITIATED'
    PAYMENT_SUBMITTED = 'PAYMENT_SUBMITTED'
    PAYMENT_COMPLETED = 'PAYMENT_COMPLETED'
    PAYMENT_ERROR = 'PAYMENT_ERROR'


# campos obligatorios de cada mensaje (version 1)
MESSAGE_SCHEMA = {
    ParentMessageType.TOKEN_INVALID: (),
    ParentMessageType.TOKEN_ERROR: (),
    ParentMessageType.PAYMENT_INITIATED: ('transactionId',),
    ParentMessageType.PAYMENT_SUBMITTED: ('transactionId', 'ticketData'),
    ParentMessageType.PAYMENT_COMPLETED: ('transactionId', 'tickets', 'ticketData'),
    ParentMessageType.PAYMENT_ERROR: ('message',),
}


class ParentChannel:
    """Bandeja de salida de mensajes para ``window.parent.postMessage``.

    Es de una sola via: la pagina contenedora puede ignorarlos. Cada respuesta
    del servicio vacia la bandeja y el shim JS del iframe los reenvia.
    """

    def __init__(self, clock=time.time):
        self.clock = clock
        self.outbox = []

    def post(self, message_type, **data):
        message_type = ParentMessageType(message_type)
        missing = [key for key in MESSAGE_SCHEMA[message_type] if key not in data]
        if missing:
            raise ValueError(f'Mensaje {message_type.value} sin campos: {", ".join(missing)}')
        message = {
            'type': message_type.value,
            'source': MESSAGE_SOURCE,
            'version': MESSAGE_VERSION,
            'timestamp': int(self.clock() * 1000),
            **data,
        }
        self.outbox.append(message)
        return message

    def drain(self):
        messages, self.outbox = self.outbox, []
        return messages


class CaptchaGate:
    """Estado del captcha de un wizard.

    Los callbacks se registran por instancia; no hay nada en el objeto global.
    """

    def __init__(self, required=False, site_key='', token=''):
        self.required = required
        self.site_key = site_key
        self.token = token
        self._listeners = []

    def subscribe(self, callback):
        self._listeners.append(callback)

    def _notify(self):
        for callback in self._listeners:
            callback(self.token)

    def verify(self, token):
        self.token = token or ''
        self._notify()

    def expire(self):
        self.token = ''
        self._notify()

    @property
    def satisfied(self):
        return not self.required or bool(self.token)

    def to_dict(self):
        return {'required': self.required, 'site_key': self.site_key, 'token': self.token}

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(required=bool(data.get('required')), site_key=data.get('site_key') or '', token=data.get('token') or '')


class TokenGate:

    PENDING = 'pending'
    VALID = 'valid'
    INVALID = 'invalid'
    ERROR = 'error'

    def __init__(self, token=None, info=None, status=PENDING, reason=None):
        self.token = token
        self.info = info
        self.status = status
        self.reason = reason

    @property
    def is_open(self):
        return self.status == self.VALID

    def headers(self):
        return {TOKEN_HEADER: self.token} if self.token else {}

    def _block(self, status, reason, channel, message_type):
        self.status = status
        self.reason = reason
        channel.post(message_type)

    def load(self, api_client, channel, origin=None):
        """Consulta el token una vez al montar el wizard y abre o bloquea la compra."""
        if not self.token:
            self._block(self.INVALID, constants.MESSAGES['token_required'], channel, ParentMessageType.TOKEN_INVALID)
            return self

        try:
            data = api_client.fetch_token_info(self.token)
        except GatewayError as e:
            logging.warning("No se pudo validar el token del iframe: %s", e.message)
            self._block(self.ERROR, f'Error al validar token: {e.message}', channel, ParentMessageType.TOKEN_ERROR)
            return self

        self.info = TokenInfo.from_response(data)
        if not self.info.valid:
            self._block(self.INVALID, constants.MESSAGES['token_invalid'], channel, ParentMessageType.TOKEN_INVALID)
        elif origin and self.info.allowed_origins and origin not in self.info.allowed_origins:
            logging.warning("Origen %s no autorizado para el token", origin)
            self._block(self.INVALID, constants.MESSAGES['token_origin'], channel, ParentMessageType.TOKEN_INVALID)
        elif self.info.usage_exhausted:
            self._block(self.INVALID, constants.MESSAGES['token_exhausted'], channel, ParentMessageType.TOKEN_INVALID)
        else:
            self.status = self.VALID
            self.reason = None
        return self

    def payment_methods(self):
        allowed = self.info.allowed_payment_methods if self.info else []
        return [m for m in constants.PAYMENT_METHODS if not allowed or m['value'] in allowed]

    @property
    def allowed_method_values(self):
        return [m['value'] for m in self.payment_methods()]

    @property
    def max_tickets(self):
        return self.info.max_tickets_per_purchase if self.info else None

    def to_dict(self):
        return {
            'token': self.token,
            'info': self.info.to_dict() if self.info else None,
            'status': self.status,
            'reason': self.reason,
        }

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(
            token=data.get('token'),
            info=TokenInfo.from_dict(data.get('info')),
            status=data.get('status') or cls.PENDING,
            reason=data.get('reason'),
        )
