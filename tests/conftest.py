from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from compra.services import PurchaseWizard
from sample_data import BUYER, VIP_AVAILABILITY


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def config():
    return {'SUCCESS_RESET_SECONDS': 3, 'P2C_CANCEL_NOTIFY': False}


@pytest.fixture
def api():
    api = MagicMock()
    api.fetch_token_info.return_value = {'valid': True}
    api.fetch_inventory.return_value = {
        'total_capacity': 5000, 'sold_count': 120, 'reserved_count': 5, 'available_count': 4875,
    }
    api.fetch_availability.return_value = VIP_AVAILABILITY
    api.fetch_banks.return_value = [{'code': '0102', 'name': 'Banco de Venezuela'}]
    api.fetch_exchange_rate.return_value = Decimal('36.50')
    return api


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def on_success():
    return MagicMock()


@pytest.fixture
def wizard(api, config, clock, on_success):
    wizard = PurchaseWizard(api, config, clock=clock, on_success=on_success)
    wizard.mount('tok-123', 'https://eventos.example.com')
    wizard.channel.drain()
    return wizard


@pytest.fixture
def to_payment(wizard):
    """Lleva el wizard al paso de pago con la seleccion que haga ``choose``."""
    def advance(choose):
        wizard.update_personal(**BUYER)
        assert wizard.next_step()
        choose(wizard)
        assert wizard.next_step()
        return wizard
    return advance
