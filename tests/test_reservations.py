"""
Reservation manager: holds, conflicts, expiry and release.
"""
import uuid
from datetime import timedelta
from unittest.mock import patch

import pytest

from apps.bookings.engine import get_available_slots
from apps.bookings.exceptions import OutsideBookingWindow, SlotAlreadyTaken, StaffUnavailable, ValidationError
from apps.bookings.intervals import Interval
from apps.bookings.models import Appointment, SlotReservation
from apps.bookings.reservations import hold, hold_slot, release, sweep_expired

from .conftest import MONDAY, NOW, at, local_times, span

pytestmark = pytest.mark.django_db


class TestHold:

    def test_creates_reservation(self, make_hold, anna, haircut, settings):
        settings.SLOT_RESERVATION_TTL_MINUTES = 10
        reservation = make_hold('14:00')

        assert reservation.staff == anna
        assert reservation.starts_at == at(MONDAY, 14)
        assert reservation.expires_at == NOW + timedelta(minutes=10)
        assert reservation.slot_key == f"{anna.pk}|20300107T130000Z|20300107T133000Z"
        assert reservation.ordered_services() == [haircut]

    def test_identical_hold_is_rejected(self, make_hold):
        make_hold('14:00', holder_key='first')
        with pytest.raises(SlotAlreadyTaken):
            make_hold('14:00', holder_key='second')
        assert SlotReservation.objects.count() == 1

    def test_overlapping_hold_is_rejected(self, make_hold):
        make_hold('14:00')
        with pytest.raises(SlotAlreadyTaken):
            make_hold('14:15', holder_key='other')

    def test_adjacent_hold_is_allowed(self, make_hold):
        make_hold('14:00')
        make_hold('14:30', holder_key='other')
        assert SlotReservation.objects.count() == 2

    def test_other_staff_same_time(self, make_hold, ben):
        make_hold('14:00')
        make_hold('14:00', holder_key='other', staff=ben)
        assert SlotReservation.objects.count() == 2

    def test_buffer_applies_to_holds(self, make_hold, rules):
        rules.buffer_between_minutes = 10
        rules.save()
        make_hold('14:00')
        with pytest.raises(SlotAlreadyTaken):
            make_hold('14:35', holder_key='other')
        make_hold('14:45', holder_key='other')

    def test_rejected_by_existing_appointment(self, make_hold, anna):
        Appointment.objects.create(
            booking_number='SB-EXISTING', salon=anna.salon, staff=anna,
            starts_at=at(MONDAY, 14, 15), ends_at=at(MONDAY, 14, 45), duration_minutes=30,
            payment_method='AT_VENUE', customer_name='Earlier customer',
        )
        with pytest.raises(SlotAlreadyTaken):
            make_hold('14:00')

    def test_concurrent_insert_loses_on_unique_key(self, make_hold):
        """Both holders pass the overlap check; the unique slot key decides."""
        make_hold('14:00', holder_key='first')
        with patch('apps.bookings.reservations._has_conflict', return_value=False):
            with pytest.raises(SlotAlreadyTaken):
                make_hold('14:00', holder_key='second')
        assert list(SlotReservation.objects.values_list('holder_key', flat=True)) == ['first']

    def test_loser_no_longer_sees_the_slot(self, make_hold, salon, haircut, anna):
        make_hold('14:00', holder_key='first')
        with pytest.raises(SlotAlreadyTaken):
            make_hold('14:00', holder_key='second')
        slots = get_available_slots(salon.pk, MONDAY, MONDAY, [haircut.pk], now=NOW)
        assert '14:00' not in local_times(slots)

    def test_hold_without_services(self, anna):
        reservation = hold(anna.pk, span(MONDAY, '10:00', '10:45'), 'holder', now=NOW)
        assert reservation.ordered_services() == []

    def test_hold_slot_rejects_reversed_range(self, anna):
        with pytest.raises(ValidationError):
            hold_slot(anna.pk, at(MONDAY, 11), at(MONDAY, 10), 'holder', now=NOW)


class TestHoldValidation:

    def test_holder_key_required(self, make_hold):
        with pytest.raises(ValidationError):
            make_hold('14:00', holder_key='')

    def test_ttl_must_be_positive(self, make_hold):
        with pytest.raises(ValidationError):
            make_hold('14:00', ttl=timedelta(0))

    def test_unknown_staff(self, anna):
        with pytest.raises(ValidationError):
            hold(uuid.uuid4(), span(MONDAY, '14:00', '14:30'), 'holder', now=NOW)

    def test_unbookable_staff(self, make_hold, anna):
        anna.is_bookable = False
        anna.save()
        with pytest.raises(StaffUnavailable):
            make_hold('14:00')

    def test_service_not_offered(self, make_hold, ben, blowdry, haircut):
        with pytest.raises(StaffUnavailable):
            hold(ben.pk, span(MONDAY, '14:00', '14:50'), 'holder', now=NOW,
                 service_ids=[haircut.pk, blowdry.pk])

    def test_services_must_fill_interval(self, anna, haircut):
        with pytest.raises(ValidationError) as exc:
            hold(anna.pk, span(MONDAY, '14:00', '15:00'), 'holder', now=NOW, service_ids=[haircut.pk])
        assert exc.value.field_errors == {'interval': 'duration_mismatch'}

    def test_outside_working_hours(self, make_hold):
        with pytest.raises(StaffUnavailable):
            make_hold('16:45')

    def test_inside_lead_time(self, make_hold):
        with pytest.raises(OutsideBookingWindow):
            make_hold('09:30', now=at(MONDAY, 9, 0))

    def test_beyond_horizon(self, anna, haircut):
        far = at(MONDAY + timedelta(days=35), 10)
        with pytest.raises(OutsideBookingWindow):
            hold(anna.pk, Interval(far, far + timedelta(minutes=30)), 'holder', now=NOW,
                 service_ids=[haircut.pk])


class TestExpiry:

    def test_hold_blocks_until_expiry(self, make_hold, salon, haircut):
        make_hold('14:00', ttl=timedelta(minutes=5))

        at_t4 = get_available_slots(salon.pk, MONDAY, MONDAY, [haircut.pk], now=NOW + timedelta(minutes=4))
        at_t6 = get_available_slots(salon.pk, MONDAY, MONDAY, [haircut.pk], now=NOW + timedelta(minutes=6))

        assert '14:00' not in local_times(at_t4)
        assert '14:00' in local_times(at_t6)
        assert sweep_expired(now=NOW + timedelta(minutes=4)) == 0
        assert sweep_expired(now=NOW + timedelta(minutes=6)) == 1
        assert not SlotReservation.objects.exists()

    def test_expired_hold_is_replaced(self, make_hold):
        make_hold('14:00', holder_key='first', ttl=timedelta(minutes=5))
        second = make_hold('14:00', holder_key='second', now=NOW + timedelta(minutes=6))
        assert list(SlotReservation.objects.all()) == [second]

    def test_sweep_is_idempotent(self, make_hold):
        make_hold('14:00', ttl=timedelta(minutes=5))
        make_hold('15:00', ttl=timedelta(minutes=30))
        later = NOW + timedelta(minutes=10)
        assert sweep_expired(now=later) == 1
        assert sweep_expired(now=later) == 0
        assert SlotReservation.objects.count() == 1


class TestRelease:

    def test_release_frees_slot(self, make_hold, salon, haircut):
        reservation = make_hold('14:00')
        assert release(reservation.pk) is True
        slots = get_available_slots(salon.pk, MONDAY, MONDAY, [haircut.pk], now=NOW)
        assert '14:00' in local_times(slots)

    def test_release_twice_is_a_no_op(self, make_hold):
        reservation = make_hold('14:00')
        release(reservation.pk)
        assert release(reservation.pk) is False

    @pytest.mark.parametrize('reservation_id', [uuid.uuid4(), 'not-a-uuid', None])
    def test_release_unknown_id(self, db, reservation_id):
        assert release(reservation_id) is False

    def test_release_checks_holder(self, make_hold):
        reservation = make_hold('14:00', holder_key='owner')
        assert release(reservation.pk, holder_key='someone-else') is False
        assert SlotReservation.objects.filter(pk=reservation.pk).exists()
        assert release(reservation.pk, holder_key='owner') is True
