"""
Availability read through the ORM: loaders + calculator.
"""
import uuid
from datetime import date, time, timedelta

import pytest

from apps.bookings.engine import get_available_slots, get_slots_by_date
from apps.bookings.exceptions import OutsideBookingWindow, ValidationError
from apps.bookings.loaders import load_salon_calendar, rules_for_salon
from apps.bookings.models import Appointment, AppointmentStatus, SlotReservation
from apps.staff.models import BlockedTime, StaffAbsence

from .conftest import MONDAY, NOW, at, local_times

pytestmark = pytest.mark.django_db


def _appointment(staff, start, end, status=AppointmentStatus.CONFIRMED):
    return Appointment.objects.create(
        booking_number=f"T-{uuid.uuid4().hex[:8]}",
        salon=staff.salon, staff=staff,
        starts_at=start, ends_at=end,
        duration_minutes=int((end - start).total_seconds() // 60),
        status=status, payment_method='AT_VENUE', customer_name='Test',
    )


class TestGetAvailableSlots:

    def test_free_monday(self, salon, anna, haircut):
        slots = get_available_slots(salon.pk, MONDAY, MONDAY, [haircut.pk], now=NOW)
        assert local_times(slots)[0] == '09:00'
        assert local_times(slots)[-1] == '16:30'
        assert {s.staff_name for s in slots} == {'Anna'}

    def test_string_ids_are_accepted(self, salon, anna, haircut):
        slots = get_available_slots(str(salon.pk), MONDAY, MONDAY, [str(haircut.pk)], now=NOW)
        assert slots

    def test_buffer_scenario_from_database(self, salon, rules, anna, haircut):
        rules.buffer_between_minutes = 10
        rules.save()
        _appointment(anna, at(MONDAY, 10), at(MONDAY, 10, 30))

        times = local_times(get_available_slots(salon.pk, MONDAY, MONDAY, [haircut.pk], now=NOW))
        assert times[:3] == ['09:00', '09:15', '10:45']
        assert len(times) == 26

    def test_cancelled_appointment_frees_time(self, salon, anna, haircut):
        _appointment(anna, at(MONDAY, 10), at(MONDAY, 10, 30), status=AppointmentStatus.CANCELLED)
        times = local_times(get_available_slots(salon.pk, MONDAY, MONDAY, [haircut.pk], now=NOW))
        assert '10:00' in times

    def test_absence_and_blocks(self, salon, anna, ben, haircut):
        StaffAbsence.objects.create(staff=anna, starts_at=at(MONDAY, 9), ends_at=at(MONDAY, 12))
        BlockedTime.objects.create(salon=salon, starts_at=at(MONDAY, 15), ends_at=at(MONDAY, 17))

        slots = get_available_slots(salon.pk, MONDAY, MONDAY, [haircut.pk], now=NOW)
        anna_times = local_times([s for s in slots if s.staff_id == anna.pk])
        ben_times = local_times([s for s in slots if s.staff_id == ben.pk])
        assert anna_times[0] == '12:00'
        assert anna_times[-1] == '14:30'
        assert ben_times[0] == '09:00'
        assert ben_times[-1] == '14:30'

    def test_expired_reservation_does_not_block(self, salon, anna, haircut):
        SlotReservation.objects.create(
            salon=salon, staff=anna, starts_at=at(MONDAY, 10), ends_at=at(MONDAY, 10, 30),
            holder_key='old', expires_at=NOW - timedelta(minutes=1),
        )
        SlotReservation.objects.create(
            salon=salon, staff=anna, starts_at=at(MONDAY, 11), ends_at=at(MONDAY, 11, 30),
            holder_key='live', expires_at=NOW + timedelta(minutes=5),
        )
        times = local_times(get_available_slots(salon.pk, MONDAY, MONDAY, [haircut.pk], now=NOW))
        assert '10:00' in times
        assert '11:00' not in times

    def test_inactive_staff_are_not_offered(self, salon, anna, haircut):
        anna.is_active = False
        anna.save()
        assert get_available_slots(salon.pk, MONDAY, MONDAY, [haircut.pk], now=NOW) == []

    def test_preferred_staff(self, salon, anna, ben, haircut):
        slots = get_available_slots(salon.pk, MONDAY, MONDAY, [haircut.pk], preferred_staff_id=ben.pk, now=NOW)
        assert {s.staff_name for s in slots} == {'Ben'}

    def test_unknown_salon(self, db, haircut):
        with pytest.raises(ValidationError) as exc:
            get_available_slots(uuid.uuid4(), MONDAY, MONDAY, [haircut.pk], now=NOW)
        assert exc.value.field_errors == {'salon': 'unknown'}

    def test_malformed_service_id_is_unknown(self, salon, anna):
        with pytest.raises(ValidationError) as exc:
            get_available_slots(salon.pk, MONDAY, MONDAY, ['not-a-uuid'], now=NOW)
        assert exc.value.field_errors == {'services': 'unknown'}

    def test_service_of_other_salon_is_unknown(self, salon, anna):
        from apps.salons.models import Salon
        from apps.services.models import BookableService

        other = Salon.objects.create(name='Elsewhere')
        foreign = BookableService.objects.create(salon=other, name='Cut', duration_minutes=30, price_cents=1)
        with pytest.raises(ValidationError):
            get_available_slots(salon.pk, MONDAY, MONDAY, [foreign.pk], now=NOW)

    def test_reversed_range(self, salon, anna, haircut):
        with pytest.raises(ValidationError) as exc:
            get_available_slots(salon.pk, MONDAY + timedelta(days=2), MONDAY, [haircut.pk], now=NOW)
        assert exc.value.field_errors == {'from': 'after_to'}

    def test_last_representable_date_is_beyond_horizon(self, salon, anna, haircut):
        with pytest.raises(OutsideBookingWindow):
            get_available_slots(salon.pk, MONDAY, date(9999, 12, 31), [haircut.pk], now=NOW)

    def test_loader_rejects_reversed_range(self, salon):
        with pytest.raises(ValidationError):
            load_salon_calendar(salon, MONDAY, MONDAY - timedelta(days=1), [], NOW)

    def test_grouped_by_date(self, salon, anna, haircut):
        from apps.staff.models import StaffWorkingHours

        StaffWorkingHours.objects.create(staff=anna, weekday=1, start_time=time(9, 0), end_time=time(10, 0))
        days = get_slots_by_date(salon.pk, MONDAY, MONDAY + timedelta(days=1), [haircut.pk], now=NOW)
        assert [d.date for d in days] == [MONDAY, MONDAY + timedelta(days=1)]
        assert len(days[1].slots) == 3


class TestRulesForSalon:

    def test_defaults_from_settings(self, salon, settings):
        settings.DEFAULT_SLOT_GRANULARITY_MINUTES = 30
        assert rules_for_salon(salon).slot_granularity_minutes == 30

    def test_salon_rules_win(self, salon, rules):
        rules.lead_time_minutes = 120
        rules.save()
        assert rules_for_salon(salon).lead_time_minutes == 120
