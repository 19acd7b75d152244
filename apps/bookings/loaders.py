"""
Read side of the persistence collaborator: builds calendar-model objects from
the ORM for one salon and date range. Queries only, no writes.
"""
from datetime import date as date_type, datetime, timedelta
from typing import Sequence
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError

from apps.salons.models import BookingRules as BookingRulesModel, Salon
from apps.services.models import BookableService as ServiceModel
from apps.staff.models import BlockedTime as BlockedTimeModel, Staff, StaffAbsence as AbsenceModel, StaffWorkingHours

from . import calendar as cal
from .exceptions import ValidationError
from .intervals import Interval
from .models import Appointment, AppointmentStatus, SlotReservation


def get_salon(salon_id) -> Salon:
    try:
        return Salon.objects.get(pk=salon_id, is_active=True)
    except (Salon.DoesNotExist, DjangoValidationError, ValueError, TypeError):
        raise ValidationError(f"Unknown salon '{salon_id}'.", {'salon': 'unknown'})


def rules_for_salon(salon: Salon) -> cal.BookingRules:
    """The salon's BookingRules row, or the settings defaults when it has none."""
    row = BookingRulesModel.objects.filter(salon=salon).first()
    if row is None:
        return cal.BookingRules(**BookingRulesModel.defaults())
    return cal.BookingRules(
        slot_granularity_minutes=row.slot_granularity_minutes,
        lead_time_minutes=row.lead_time_minutes,
        horizon_days=row.horizon_days,
        buffer_between_minutes=row.buffer_between_minutes,
        cancellation_deadline_hours=row.cancellation_deadline_hours,
    )


def load_salon_calendar(salon: Salon, date_from: date_type, date_to: date_type,
                        service_ids: Sequence, now: datetime) -> cal.SalonCalendar:
    """
    Everything needed to compute slots for date_from..date_to (salon-local,
    inclusive). Only records overlapping that range are loaded; cancelled
    appointments and expired reservations are left out.
    """
    tz = salon.tz
    try:
        window = Interval(
            datetime.combine(date_from, datetime.min.time(), tzinfo=tz),
            datetime.combine(date_to + timedelta(days=1), datetime.min.time(), tzinfo=tz),
        )
    except (ValueError, OverflowError):
        raise ValidationError(f"Invalid date range {date_from}..{date_to}.", {'from': 'after_to'})
    overlapping = {'starts_at__lt': window.end, 'ends_at__gt': window.start}

    services = ServiceModel.objects.filter(salon=salon, pk__in=_clean_ids(service_ids))
    staff = list(
        Staff.objects
        .filter(salon=salon, is_active=True, is_bookable=True)
        .prefetch_related('services')
    )
    staff_ids = [m.pk for m in staff]

    return cal.SalonCalendar(
        timezone=tz,
        opening_hours=tuple(
            cal.OpeningHours(oh.weekday, oh.open_time, oh.close_time, oh.is_closed)
            for oh in salon.opening_hours.all()
        ),
        staff=tuple(
            cal.StaffMember(
                id=m.pk,
                name=m.name,
                service_ids=frozenset(s.pk for s in m.services.all()),
                is_bookable=m.is_bookable,
            )
            for m in staff
        ),
        services=tuple(
            cal.BookableService(s.pk, s.name, s.duration_minutes, s.price_cents, s.is_active)
            for s in services
        ),
        working_hours=tuple(
            cal.WorkingHours(wh.staff_id, wh.weekday, wh.start_time, wh.end_time)
            for wh in StaffWorkingHours.objects.filter(staff_id__in=staff_ids)
        ),
        absences=tuple(
            cal.StaffAbsence(a.staff_id, Interval(a.starts_at, a.ends_at))
            for a in AbsenceModel.objects.filter(staff_id__in=staff_ids, **overlapping)
        ),
        blocked_times=tuple(
            cal.BlockedTime(b.staff_id, Interval(b.starts_at, b.ends_at))
            for b in BlockedTimeModel.objects.filter(salon=salon, **overlapping)
        ),
        appointments=tuple(
            cal.ExistingAppointment(a.pk, a.staff_id, Interval(a.starts_at, a.ends_at), a.status)
            for a in (
                Appointment.objects
                .filter(staff_id__in=staff_ids, **overlapping)
                .exclude(status=AppointmentStatus.CANCELLED)
            )
        ),
        reservations=tuple(
            cal.HeldSlot(r.pk, r.staff_id, Interval(r.starts_at, r.ends_at), r.expires_at)
            for r in SlotReservation.objects.filter(
                staff_id__in=staff_ids, expires_at__gt=now, **overlapping,
            )
        ),
    )


def _clean_ids(ids: Sequence) -> list:
    """Drop values that cannot be UUID primary keys; they resolve as unknown services."""
    cleaned = []
    for value in ids:
        try:
            cleaned.append(value if isinstance(value, UUID) else UUID(str(value)))
        except ValueError:
            continue
    return cleaned
