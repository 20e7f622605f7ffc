import io
from unittest.mock import MagicMock

import pytest
import redis
from cachelib.file import FileSystemCache

from factory import createApp
from gateway_api.utils import GatewayError
from sample_data import BUYER, P2C_INITIATED, P2C_PHONE


@pytest.fixture
def redis_client():
    client = MagicMock()
    client.set.return_value = True
    return client


@pytest.fixture
def app(tmp_path, api, redis_client):
    app = createApp({
        'TESTING': True,
        'SECRET_KEY': 'clave-de-pruebas',
        'SESSION_TYPE': 'cachelib',
        'SESSION_CACHELIB': FileSystemCache(str(tmp_path / 'sessions')),
        'SESSION_COOKIE_SECURE': False,
        'SESSION_COOKIE_SAMESITE': 'Lax',
    })
    app.extensions['tickets_api'] = api
    app.extensions['redis'] = redis_client
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def mounted(client):
    response = client.post('/compra/session', json={'token': 'tok-123', 'origin': 'https://eventos.example.com'})
    assert response.status_code == 200
    return client


def test_mount_returns_initial_state(mounted):
    body = mounted.get('/compra/state').get_json()
    assert body['status'] == 'ok'
    assert body['state']['step'] == 1
    assert body['state']['step_name'] == 'PERSONAL_DATA'
    assert body['state']['banks'] == [{'code': '0102', 'name': 'Banco de Venezuela'}]
    assert body['messages'] == []


def test_blocked_token(client, api):
    api.fetch_token_info.return_value = {'valid': False}
    response = client.post('/compra/session', json={'token': 'tok-vencido'})
    body = response.get_json()
    assert response.status_code == 403
    assert body['state']['blocked'] is True
    assert [m['type'] for m in body['messages']] == ['TOKEN_INVALID']

    response = client.post('/compra/next')
    assert response.status_code == 403
    assert response.get_json()['messages'] == []


def test_validation_error(mounted):
    response = mounted.post('/compra/personal', json={**BUYER, 'buyer_email': ''})
    assert response.status_code == 200
    response = mounted.post('/compra/next')
    body = response.get_json()
    assert response.status_code == 400
    assert 'buyer_email' in body['state']['errors']


def test_illegal_step(mounted):
    response = mounted.post('/compra/p2c/confirm', json={'reference': '123456'})
    assert response.status_code == 409


def test_unknown_zone_type(mounted):
    mounted.post('/compra/personal', json=BUYER)
    mounted.post('/compra/next')
    response = mounted.post('/compra/zone', json={'zone_type': 'palco'})
    assert response.status_code == 400


def test_manual_payment_flow(mounted, api):
    mounted.post('/compra/personal', json=BUYER)
    mounted.post('/compra/next')
    mounted.post('/compra/zone', json={'zone_type': 'preferencial'})
    body = mounted.post('/compra/quantity', json={'action': 'set', 'value': 2}).get_json()
    assert body['state']['totals']['total_usd'] == 70.0
    assert body['state']['totals']['total_bs'] == '2555.00'
    assert mounted.post('/compra/next').get_json()['state']['step'] == 3

    api.submit_manual_payment.return_value = {'success': True, 'transactionId': 'tx-7', 'message': 'Recibido'}
    response = mounted.post('/compra/submit', data={
        'payment_method': 'zelle',
        'email_from': 'pagador@example.com',
        'reference': 'ZL123',
        'proof': (io.BytesIO(b'\x89PNG'), 'mi comprobante.png', 'image/png'),
    }, content_type='multipart/form-data')
    body = response.get_json()

    assert response.status_code == 200
    assert body['state']['ticket']['payment_status'] == 'pendiente'
    assert [m['type'] for m in body['messages']] == ['PAYMENT_SUBMITTED']

    data, files, headers = api.submit_manual_payment.call_args.args
    assert files['proof'][0] == 'mi_comprobante.png'
    assert data['quantity'] == '2'


def test_upstream_failure_is_502(mounted, api):
    mounted.post('/compra/personal', json=BUYER)
    mounted.post('/compra/next')
    mounted.post('/compra/zone', json={'zone_type': 'box', 'box': 'B5'})
    mounted.post('/compra/box-mode', json={'full': True})
    mounted.post('/compra/next')
    mounted.post('/compra/payment', json={
        'payment_method': 'pago_movil',
        'p2c': {'client_phone': '04141234567', 'client_bank_code': '0102'},
    })
    api.initiate_p2c.side_effect = GatewayError('Error de conexión. Por favor, intente nuevamente.', 504)
    response = mounted.post('/compra/submit', json={})
    body = response.get_json()
    assert response.status_code == 502
    assert body['message'] == 'Error de conexión. Por favor, intente nuevamente.'
    assert [m['type'] for m in body['messages']] == ['PAYMENT_ERROR']
    assert body['state']['step'] == 3


def test_captcha_endpoints(client, api):
    api.fetch_token_info.return_value = {'valid': True, 'requires_captcha': True, 'captcha_site_key': 'site-1'}
    client.post('/compra/session', json={'token': 'tok-123'})
    body = client.post('/compra/captcha', json={'token': 'cap-tok'}).get_json()
    assert body['state']['captcha']['satisfied'] is True
    body = client.delete('/compra/captcha').get_json()
    assert body['state']['captcha']['satisfied'] is False
    assert body['state']['captcha']['site_key'] == 'site-1'


def at_pago_movil(client):
    client.post('/compra/personal', json=BUYER)
    client.post('/compra/next')
    client.post('/compra/zone', json={'zone_type': 'preferencial'})
    client.post('/compra/next')
    client.post('/compra/payment', json={'payment_method': 'pago_movil', 'p2c': P2C_PHONE})


class TestSubmitLock:
    def test_lock_is_taken_and_released(self, mounted, api, redis_client):
        at_pago_movil(mounted)
        api.initiate_p2c.return_value = P2C_INITIATED
        response = mounted.post('/compra/submit', json={})
        assert response.status_code == 200

        key, owner = redis_client.set.call_args.args
        assert key.startswith('compra:envio:')
        assert redis_client.set.call_args.kwargs == {'nx': True, 'ex': 60}
        _, numkeys, released_key, released_owner = redis_client.eval.call_args.args
        assert (numkeys, released_key, released_owner) == (1, key, owner)

    def test_second_submit_of_the_session_is_rejected(self, mounted, api, redis_client):
        at_pago_movil(mounted)
        redis_client.set.return_value = None
        response = mounted.post('/compra/submit', json={})
        assert response.status_code == 409
        assert response.get_json()['message'] == 'Ya hay una solicitud en proceso'
        api.initiate_p2c.assert_not_called()
        redis_client.eval.assert_not_called()
        assert mounted.get('/compra/state').get_json()['state']['step'] == 3

    def test_redis_unavailable(self, mounted, api, redis_client):
        redis_client.set.side_effect = redis.exceptions.ConnectionError('sin conexión')
        response = mounted.post('/compra/p2c/confirm', json={'reference': '123456'})
        assert response.status_code == 503
        api.confirm_p2c.assert_not_called()

    def test_release_failure_does_not_break_the_response(self, mounted, api, redis_client):
        at_pago_movil(mounted)
        api.initiate_p2c.return_value = P2C_INITIATED
        redis_client.eval.side_effect = redis.exceptions.ConnectionError('sin conexión')
        response = mounted.post('/compra/submit', json={})
        assert response.status_code == 200
        assert response.get_json()['state']['step_name'] == 'P2C_CONFIRM'
