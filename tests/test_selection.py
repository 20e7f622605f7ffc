from decimal import Decimal

import pytest

from compra.inventory import box_availability, box_zone, find_zone, zones_from_availability
from compra.pricing import selection_total
from compra.selection import BOX, SelectionController
from sample_data import BOX_AVAILABILITY, VIP_AVAILABILITY


@pytest.fixture
def controller():
    return SelectionController({})


@pytest.fixture
def vip_zone():
    zones, _ = zones_from_availability(VIP_AVAILABILITY)
    return find_zone(zones, 'vip1')


class TestQuantities:
    def test_general_quantity_is_clamped(self, controller):
        controller.select_preferencial()
        assert controller.set_quantity(50) == 10
        assert controller.set_quantity(0) == 1
        assert controller.decrement() == 1
        controller.set_quantity(10)
        assert controller.increment() == 10

    def test_token_limit_lowers_the_cap(self):
        controller = SelectionController({}, max_tickets=4)
        controller.select_preferencial()
        assert controller.set_quantity(9) == 4

    def test_partial_box_quantity(self, controller):
        controller.select_box('B7')
        controller.increment()
        controller.increment()
        assert controller.box_quantity == 3
        assert controller.selection.zone.box_quantity == 3
        assert controller.selection.quantity == 3

    def test_full_box_quantity_is_fixed(self, controller):
        controller.select_box('B5')
        assert controller.set_full_box(True)
        assert controller.set_quantity(3) == 10
        assert controller.selection.zone.box_full_purchase
        assert controller.selection.zone.box_quantity == 10

    def test_leaving_full_box_resets_to_one(self, controller):
        controller.select_box('B5')
        controller.set_full_box(True)
        controller.set_full_box(False)
        assert controller.box_quantity == 1

    def test_full_box_requires_a_box(self, controller):
        controller.select_preferencial()
        assert controller.set_full_box(True) is False


class TestZoneSwitch:
    def test_switch_resets_seats_and_quantity(self, controller, vip_zone):
        controller.select_zone(vip_zone)
        assert controller.toggle_seat('vip1_0_2') is None
        controller.select_preferencial()
        assert controller.selection.seats == []
        assert controller.selection.general_quantity == 1

    def test_box_to_preferencial(self, controller):
        controller.select_box('B3')
        controller.set_quantity(6)
        controller.select_preferencial()
        assert controller.selected_box is None
        assert controller.box_quantity == 1
        assert controller.selection.quantity == 1

    def test_unknown_box(self, controller):
        with pytest.raises(ValueError):
            controller.select_box('B31')
        assert controller.zone_type is None

    def test_select_box_zone_goes_through_box_mode(self, controller):
        controller.select_zone(box_zone('B9'))
        assert controller.zone_type == BOX
        assert controller.selected_box == 'B9'


class TestBoxSeats:
    def test_partial_quantity_follows_free_seats(self, controller):
        controller.select_box('B4', available=3)
        assert controller.set_quantity(10) == 3
        assert controller.selection.zone.available == 3

    def test_box_without_free_seats(self, controller):
        with pytest.raises(ValueError):
            controller.select_box('B4', available=0)
        assert controller.selected_box is None

    def test_full_box_needs_ten_free_seats(self, controller):
        controller.select_box('B4', available=9)
        assert controller.set_full_box(True) is False
        assert controller.box_quantity == 1

    def test_switching_zone_restores_the_box_limit(self, controller):
        controller.select_box('B4', available=2)
        controller.select_box('B5')
        assert controller.set_quantity(10) == 10

    @pytest.mark.parametrize('code, expected', [
        ('B1', ('sold', 0)),
        ('b2', ('available', 4)),
        ('B3', ('available', 10)),
        ('B9', None),
    ])
    def test_box_availability_from_detail(self, code, expected):
        detail = BOX_AVAILABILITY['boxes']['detail']
        assert box_availability(detail, code) == expected

    def test_detail_without_seat_count(self):
        assert box_availability([{'code': 'B6', 'status': 'reserved'}], 'B6') == ('reserved', 0)
        assert box_availability([{'code': 'B6', 'status': 'available'}], 'B6') == ('available', 10)


class TestSeats:
    def test_toggle_twice_deselects(self, controller, vip_zone):
        controller.select_zone(vip_zone)
        controller.toggle_seat('vip1_0_2')
        controller.toggle_seat('vip1_0_2')
        assert controller.selection.seats == []

    def test_numbered_total_is_seats_times_price(self, controller, vip_zone):
        controller.select_zone(vip_zone)
        controller.toggle_seat('vip1_0_2')
        controller.toggle_seat('vip1_0_4')
        assert selection_total(controller.selection) == Decimal('240')

    def test_sold_seat_is_rejected(self, controller, vip_zone):
        controller.select_zone(vip_zone)
        assert controller.toggle_seat('vip1_0_1') == 'Este asiento no está disponible'

    def test_sixth_seat_is_rejected(self, controller, vip_zone):
        controller.select_zone(vip_zone)
        for seat_id in ('vip1_0_2', 'vip1_0_4', 'vip1_0_5', 'vip1_1_1', 'vip1_1_3'):
            assert controller.toggle_seat(seat_id) is None
        assert controller.toggle_seat('vip1_1_5') == 'Máximo 5 asientos por compra'
        assert len(controller.selection.seats) == 5

    def test_round_trip_keeps_selection(self, controller, vip_zone):
        controller.select_zone(vip_zone)
        controller.toggle_seat('vip1_0_2')
        restored = SelectionController.from_dict(controller.to_dict(), {})
        assert [s.id for s in restored.selection.seats] == ['vip1_0_2']
        assert restored.selection.zone == vip_zone
