from decimal import Decimal

import pytest

from compra.inventory import box_zone, general_zone
from compra.pricing import (availability_percentage, box_prices, box_savings, bs_amount, format_currency,
                            is_low_availability, purchase_description, total_price, unit_price)


class TestTotalPrice:
    def test_full_box_is_package_price(self):
        zone = box_zone('B5', full=True)
        assert total_price(zone, [], 10) == Decimal('750')

    def test_full_box_ignores_seat_price(self):
        zone = box_zone('B5', full=True, seat_price=Decimal('80'))
        assert total_price(zone, [], 10, seat_price=Decimal('80'), full_price=Decimal('700')) == Decimal('700')

    def test_partial_box_is_quantity_times_seat_price(self):
        zone = box_zone('B2', quantity=3)
        assert total_price(zone, [], 3) == Decimal('225')

    @pytest.mark.parametrize('n', range(1, 11))
    def test_partial_box_for_every_quantity(self, n):
        assert total_price(box_zone('B2', quantity=n), [], n) == Decimal('75') * n

    def test_box_total_grows_with_quantity(self):
        totals = [total_price(box_zone('B2', quantity=n), [], n) for n in range(1, 11)]
        assert all(a < b for a, b in zip(totals, totals[1:]))
        # el paquete nunca cuesta mas que los 10 puestos sueltos
        assert total_price(box_zone('B2', full=True), [], 10) <= totals[-1]

    def test_general_total_grows_with_quantity(self):
        totals = [total_price(general_zone(), [], n) for n in range(1, 11)]
        assert all(a < b for a, b in zip(totals, totals[1:]))

    def test_general_zone(self):
        assert total_price(general_zone(), [], 4) == Decimal('140')

    def test_no_zone_is_zero(self):
        assert total_price(None, [], 3) == Decimal('0')

    def test_unit_price_of_full_box_is_per_seat(self):
        assert unit_price(box_zone('B1', full=True)) == Decimal('75')


class TestBoxPrices:
    def test_defaults(self):
        assert box_prices({}) == (Decimal('75'), Decimal('750'))

    def test_configured(self):
        assert box_prices({'BOX_SEAT_PRICE_USD': '80', 'BOX_FULL_PRICE_USD': '700'}) == (Decimal('80'), Decimal('700'))

    def test_savings_can_be_negative(self):
        assert box_savings(Decimal('75'), Decimal('750')) == Decimal('0')
        assert box_savings(Decimal('60'), Decimal('700')) == Decimal('-100')


class TestBsAmount:
    def test_full_box_at_default_rate(self):
        assert bs_amount(Decimal('750'), Decimal('36.50')) == '27375.00'

    def test_whole_numbers(self):
        assert bs_amount(100, 37) == '3700.00'

    def test_missing_rate(self):
        assert bs_amount(Decimal('750'), None) == '0.00'

    def test_rounds_half_up(self):
        assert bs_amount(Decimal('0.125'), Decimal('1')) == '0.13'


class TestFormatting:
    def test_format_currency(self):
        assert format_currency(Decimal('35')) == '$ 35.00'
        assert format_currency('1277.5', 'BS') == 'Bs. 1277.50'

    @pytest.mark.parametrize('zone, quantity, expected', [
        (box_zone('B1', full=True), 10, 'Box Completo (10 puestos)'),
        (box_zone('B1', quantity=1), 1, '1 puesto en box'),
        (box_zone('B1', quantity=4), 4, '4 puestos en box'),
        (general_zone(), 2, '2 entradas generales'),
    ])
    def test_purchase_description(self, zone, quantity, expected):
        assert purchase_description(zone, quantity) == expected

    def test_availability(self):
        assert availability_percentage(50, 200) == 25.0
        assert availability_percentage(5, 0) == 0.0
        assert is_low_availability(availability_percentage(10, 100))
        assert not is_low_availability(availability_percentage(20, 100))
