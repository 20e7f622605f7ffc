import pytest

from compra.constants import PERSONAL_DATA, ZONE_SELECTION, PAYMENT, P2C_CONFIRM
from compra.inventory import box_zone, general_zone
from compra.steps import (StepMachine, validate_p2c_reference, validate_payment, validate_personal_data,
                          validate_proof_file, validate_zone_selection)
from models import P2CData, PaymentData, ProofFile, PurchaseForm, Selection
from sample_data import BUYER


class TestStepMachine:
    def test_advances_one_step_at_a_time(self):
        steps = StepMachine()
        assert steps.next({})
        assert steps.step == ZONE_SELECTION
        assert steps.next({})
        assert steps.step == PAYMENT
        assert not steps.next({})
        assert steps.step == PAYMENT

    def test_errors_block_advance(self):
        steps = StepMachine()
        assert not steps.next({'buyer_email': 'requerido'})
        assert steps.step == PERSONAL_DATA

    def test_prev_is_noop_on_first_step(self):
        steps = StepMachine()
        assert not steps.prev()
        assert steps.step == PERSONAL_DATA

    def test_p2c_confirm_only_from_payment(self):
        steps = StepMachine(ZONE_SELECTION)
        assert not steps.enter_p2c_confirm()
        steps = StepMachine(PAYMENT)
        assert steps.enter_p2c_confirm()
        assert steps.name == 'P2C_CONFIRM'
        assert not steps.prev()
        assert steps.cancel_p2c()
        assert steps.step == PAYMENT

    def test_reset_deadline(self):
        steps = StepMachine(P2C_CONFIRM)
        steps.schedule_reset(100.0, 3)
        assert not steps.reset_due(102.9)
        assert steps.reset_due(103.0)
        steps.reset()
        assert steps.step == PERSONAL_DATA
        assert steps.reset_at is None


class TestValidations:
    def test_personal_data_ok(self):
        assert validate_personal_data(PurchaseForm(**BUYER)) == {}

    def test_empty_email(self):
        form = PurchaseForm(**{**BUYER, 'buyer_email': ''})
        assert list(validate_personal_data(form)) == ['buyer_email']

    def test_zone_required(self):
        assert 'zone' in validate_zone_selection(Selection())

    def test_zone_over_token_limit(self):
        selection = Selection(zone=general_zone(), general_quantity=6)
        assert validate_zone_selection(selection, max_tickets=4) == {'quantity': 'Máximo 4 entradas por compra'}

    def test_box_selection_ok(self):
        assert validate_zone_selection(Selection(zone=box_zone('B1', full=True))) == {}

    def test_pago_movil_phone(self):
        errors = validate_payment('pago_movil', P2CData('02121234567', ''), PaymentData())
        assert set(errors) == {'client_phone', 'client_bank_code'}

    def test_transfer_requires_proof(self):
        errors = validate_payment('transferencia_nacional', P2CData(), PaymentData(bank_code='0102', reference='123'))
        assert errors == {'proof_file': 'Archivo es requerido'}

    def test_method_not_allowed_by_token(self):
        errors = validate_payment('paypal', P2CData(), PaymentData(paypal_email='a@b.com'), allowed_methods=['pago_movil'])
        assert 'payment_method' in errors

    def test_captcha_required(self):
        errors = validate_payment('paypal', P2CData(), PaymentData(paypal_email='a@b.com'), requires_captcha=True)
        assert errors == {'captcha': 'Por favor complete el captcha'}

    @pytest.mark.parametrize('proof, expected', [
        (ProofFile('a.png', b'x' * (5 * 1024 * 1024 + 1), 'image/png'), 'El archivo no debe superar 5MB'),
        (ProofFile('a.gif', b'x', 'image/gif'), 'Solo se permiten imágenes (JPG, PNG) o PDF'),
        (ProofFile('a.pdf', b'%PDF', 'application/pdf'), None),
    ])
    def test_proof_file(self, proof, expected):
        assert validate_proof_file(proof) == expected

    @pytest.mark.parametrize('reference, valid', [
        ('123456', True),
        ('ab12', True),
        ('12', False),
        ('12-34-56', False),
        ('', False),
    ])
    def test_p2c_reference(self, reference, valid):
        assert (validate_p2c_reference(reference) is None) == valid
