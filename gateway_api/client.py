import logging

import requests

import compra.constants as constants
from extensions import build_http_session
from gateway_api.utils import GatewayError, parse_json_response, parse_exchange_rate, parse_banks, mask, format_amount

CONNECT_TIMEOUT = 5


class TicketsApiClient:
    """Todas las llamadas HTTP del wizard hacia el backend de boletos.

    Cada metodo retorna el JSON ya validado o lanza ``GatewayError``.
    """

    def __init__(self, base_url, timeout=30, verify=True, session=None):
        self.base_url = (base_url or '').rstrip('/')
        # timeouts: (connect, read); sin esto un request colgado deja el boton bloqueado
        self.timeout = (CONNECT_TIMEOUT, timeout)
        self.verify = verify
        self.session = session or build_http_session()

    @classmethod
    def from_config(cls, config):
        return cls(
            base_url=config.get('TICKETS_API_URL'),
            timeout=int(config.get('REQUEST_TIMEOUT', 30)),
            verify=config.get('REQUESTS_VERIFY', True),
        )

    def _url(self, endpoint):
        return f"{self.base_url}{constants.API_ENDPOINTS[endpoint]}"

    def _request(self, method, endpoint, fallback_message=None, **kwargs):
        url = self._url(endpoint)
        try:
            response = self.session.request(method, url, timeout=self.timeout, verify=self.verify,
                                            allow_redirects=False, **kwargs)
        except requests.Timeout:
            logging.exception("Timeout al conectar con el backend (%s %s)", method, endpoint)
            raise GatewayError(constants.MESSAGES['connection_error'], 504)
        except requests.exceptions.RequestException:
            logging.exception("Error de conexión con el backend (%s %s)", method, endpoint)
            raise GatewayError(constants.MESSAGES['connection_error'], 503)

        logging.info("Backend %s %s -> %s", method, endpoint, response.status_code)
        return parse_json_response(response, fallback_message)

    # --- lecturas publicas ---

    def fetch_token_info(self, token):
        logging.info("Consultando token del iframe %s", mask(token))
        return self._request('GET', 'token_info', params={'token': token})

    def fetch_inventory(self):
        return self._request('GET', 'inventory')

    def fetch_availability(self):
        return self._request('GET', 'boxes_availability')

    def fetch_banks(self):
        return parse_banks(self._request('GET', 'banks'))

    def fetch_exchange_rate(self):
        return parse_exchange_rate(self._request('GET', 'exchange_rate'))

    # --- operaciones con token (cabecera X-Iframe-Token, nunca en la URL) ---

    def initiate_p2c(self, payload, headers):
        logging.info("Iniciando pago móvil P2C por %s USD", format_amount(payload.get('total_price')))
        return self._request('POST', 'initiate_p2c', constants.MESSAGES['processing_error'],
                             json=payload, headers=headers)

    def confirm_p2c(self, payload, headers):
        logging.info("Confirmando P2C %s (ref %s)", payload.get('transactionId'), mask(payload.get('reference')))
        return self._request('POST', 'confirm_p2c', constants.MESSAGES['confirm_error'],
                             json=payload, headers=headers)

    def cancel_p2c(self, transaction_id, headers):
        return self._request('POST', 'cancel_p2c', json={'transactionId': transaction_id}, headers=headers)

    def submit_manual_payment(self, data, files, headers):
        logging.info("Enviando pago manual (%s)", data.get('payment_method'))
        return self._request('POST', 'manual_payment', constants.MESSAGES['processing_error'],
                             data=data, files=files, headers=headers)
