"""
Reservation manager — the only writer of "currently claimed" time.

Public API:
  hold(staff_id, interval, holder_key, ttl=None, service_ids=(), customer=None, now=None)
  release(reservation_id, holder_key=None)
  sweep_expired(now=None)

Exclusivity comes from the database, not from in-process locks:
  - SlotReservation.slot_key is UNIQUE, so two holds on the identical
    (staff, start, end) can never both commit
  - on PostgreSQL an exclusion constraint also rejects overlapping holds
  - the overlap check below runs under SELECT FOR UPDATE inside the same
    transaction as the insert
"""
import logging
from datetime import datetime, timedelta
from typing import Optional, Sequence
from uuid import UUID

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.services.models import BookableService
from apps.staff.models import Staff

from .availability import is_within_working_time
from .calendar import make_interval
from .exceptions import OutsideBookingWindow, SlotAlreadyTaken, StaffUnavailable, ValidationError
from .intervals import Interval
from .loaders import load_salon_calendar, rules_for_salon
from .models import Appointment, AppointmentStatus, ReservationService, SlotReservation

logger = logging.getLogger(__name__)


def default_ttl() -> timedelta:
    return timedelta(minutes=getattr(settings, 'SLOT_RESERVATION_TTL_MINUTES', 10))


# ── Hold ──────────────────────────────────────────────────────────────────────

@transaction.atomic
def hold(staff_id, interval: Interval, holder_key: str, ttl: Optional[timedelta] = None,
         service_ids: Sequence = (), customer=None, now: Optional[datetime] = None) -> SlotReservation:
    """
    Claim `interval` for a staff member until now + ttl.

    Steps (single transaction):
      1. Validate the request (staff, services, lead time, horizon, working time)
      2. Drop expired holds overlapping the interval, so they cannot collide
      3. Reject if a live hold or a non-cancelled appointment overlaps the
         interval widened by the salon's buffer
      4. Insert; a unique/exclusion violation from a concurrent holder is
         reported the same way as step 3

    Raises:
      ValidationError       — malformed request
      OutsideBookingWindow  — start is inside the lead time or beyond the horizon
      StaffUnavailable      — staff inactive, not working then, or lacks a service
      SlotAlreadyTaken      — the time is claimed by someone else
    """
    now = now or timezone.now()
    ttl = default_ttl() if ttl is None else ttl
    if not holder_key:
        raise ValidationError('A holder key is required.', {'holder_key': 'required'})
    if ttl <= timedelta(0):
        raise ValidationError('Reservation TTL must be positive.', {'ttl': 'not_positive'})

    staff = _bookable_staff(staff_id)
    salon = staff.salon
    rules = rules_for_salon(salon)
    services = _services_for_hold(staff, service_ids, interval)
    _check_window(interval, rules, now, salon.tz)

    day = interval.start.astimezone(salon.tz).date()
    calendar = load_salon_calendar(salon, day, day, [s.pk for s in services], now)
    if not is_within_working_time(calendar, staff.pk, interval):
        raise StaffUnavailable(f"{staff.name} is not working for the whole of the requested time.")

    padded = interval.padded(rules.buffer)
    purged = _deleted_reservations(
        SlotReservation.objects
        .filter(staff=staff, expires_at__lte=now, starts_at__lt=padded.end, ends_at__gt=padded.start)
        .delete()
    )
    if purged:
        logger.debug('Purged %d expired hold(s) for staff %s before holding', purged, staff.pk)

    if _has_conflict(staff, padded, now):
        raise SlotAlreadyTaken()

    try:
        with transaction.atomic():
            reservation = SlotReservation.objects.create(
                salon=salon,
                staff=staff,
                starts_at=interval.start,
                ends_at=interval.end,
                holder_key=holder_key,
                customer=customer,
                created_at=now,
                expires_at=now + ttl,
            )
    except IntegrityError:
        logger.info('Concurrent hold lost for staff %s at %s', staff.pk, interval.start.isoformat())
        raise SlotAlreadyTaken()

    ReservationService.objects.bulk_create([
        ReservationService(reservation=reservation, service=service, position=position)
        for position, service in enumerate(services)
    ])

    logger.info(
        'Hold %s created for staff %s %s–%s (expires %s)',
        reservation.pk, staff.pk, interval.start.isoformat(), interval.end.isoformat(),
        reservation.expires_at.isoformat(),
    )
    return reservation


def hold_slot(staff_id, starts_at: datetime, ends_at: datetime, holder_key: str, **kwargs) -> SlotReservation:
    """hold() for raw start/end datetimes, reporting a reversed range as a ValidationError."""
    return hold(staff_id, make_interval(starts_at, ends_at), holder_key, **kwargs)


def _has_conflict(staff: Staff, padded: Interval, now: datetime) -> bool:
    """
    Live holds first, then appointments. Rows found are locked until the
    transaction ends.
    """
    held = (
        SlotReservation.objects
        .select_for_update()
        .filter(staff=staff, expires_at__gt=now, starts_at__lt=padded.end, ends_at__gt=padded.start)
        .exists()
    )
    if held:
        return True
    return (
        Appointment.objects
        .select_for_update()
        .filter(staff=staff, starts_at__lt=padded.end, ends_at__gt=padded.start)
        .exclude(status=AppointmentStatus.CANCELLED)
        .exists()
    )


def _bookable_staff(staff_id) -> Staff:
    try:
        staff = Staff.objects.select_related('salon').get(pk=staff_id)
    except (Staff.DoesNotExist, DjangoValidationError, ValueError, TypeError):
        raise ValidationError(f"Unknown staff member '{staff_id}'.", {'staff': 'unknown'})
    if not (staff.is_active and staff.is_bookable and staff.salon.is_active):
        raise StaffUnavailable(f"{staff.name} cannot be booked online.")
    return staff


def _services_for_hold(staff: Staff, service_ids: Sequence, interval: Interval) -> list:
    """
    Services the hold is made for, in request order. When given, they must be
    active, offered by the staff member and fill the interval exactly.
    """
    if not service_ids:
        return []
    try:
        keys = [str(UUID(str(sid))) for sid in service_ids]
    except ValueError:
        raise ValidationError('Invalid service id.', {'services': 'unknown'})
    if len(set(keys)) != len(keys):
        raise ValidationError('Each service can only be selected once.', {'services': 'duplicate'})

    found = {
        str(s.pk): s
        for s in BookableService.objects.filter(salon_id=staff.salon_id, pk__in=keys, is_active=True)
    }
    missing = [k for k in keys if k not in found]
    if missing:
        raise ValidationError(f"Unknown service '{missing[0]}'.", {'services': 'unknown'})

    offered = {str(pk) for pk in staff.services.values_list('pk', flat=True)}
    if not set(keys) <= offered:
        raise StaffUnavailable(f"{staff.name} does not offer all of the selected services.")

    services = [found[k] for k in keys]
    total = timedelta(minutes=sum(s.duration_minutes for s in services))
    if total != interval.duration:
        raise ValidationError(
            'The selected time does not match the length of the selected services.',
            {'interval': 'duration_mismatch'},
        )
    return services


def _check_window(interval: Interval, rules, now: datetime, tz) -> None:
    if interval.start < now + rules.lead_time:
        raise OutsideBookingWindow(
            f"Online bookings need at least {rules.lead_time_minutes} minutes notice.",
            {'starts_at': 'inside_lead_time'},
        )
    today = now.astimezone(tz).date()
    if interval.start.astimezone(tz).date() > rules.last_bookable_date(today):
        raise OutsideBookingWindow(
            f"Bookings are possible at most {rules.horizon_days} days in advance.",
            {'starts_at': 'beyond_horizon'},
        )


# ── Release & sweep ───────────────────────────────────────────────────────────

def release(reservation_id, holder_key: Optional[str] = None) -> bool:
    """
    Give a hold back. Unknown, already released or foreign ids are a no-op.
    Returns True if a hold was deleted.
    """
    try:
        qs = SlotReservation.objects.filter(pk=reservation_id)
    except (DjangoValidationError, ValueError, TypeError):
        return False
    if holder_key is not None:
        qs = qs.filter(holder_key=holder_key)
    deleted = _deleted_reservations(qs.delete())
    if deleted:
        logger.info('Hold %s released', reservation_id)
    return bool(deleted)


def sweep_expired(now: Optional[datetime] = None) -> int:
    """Delete every hold whose expires_at has passed. Safe to run at any time."""
    now = now or timezone.now()
    count = _deleted_reservations(SlotReservation.objects.filter(expires_at__lte=now).delete())
    if count:
        logger.info('Swept %d expired hold(s)', count)
    return count


def _deleted_reservations(result) -> int:
    """Reservation rows removed by a QuerySet.delete(), not counting cascaded service lines."""
    _, per_model = result
    return per_model.get(SlotReservation._meta.label, 0)
