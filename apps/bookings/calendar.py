"""
Calendar model — plain, immutable data handed to the availability calculator.

Nothing here touches the database. loaders.py builds these objects from the
ORM; tests build them by hand. Behaviour is limited to validation and a few
read-only conveniences.

Weekdays follow date.weekday(): 0 = Monday … 6 = Sunday.
"""
from dataclasses import dataclass, field
from datetime import date as date_type, datetime, time as time_type, timedelta, timezone as dt_timezone, tzinfo
from typing import FrozenSet, Optional, Tuple
from uuid import UUID

from .exceptions import ValidationError
from .intervals import Interval

CANCELLED = 'CANCELLED'


def make_interval(start: datetime, end: datetime) -> Interval:
    """Interval constructor that reports bad input as a booking ValidationError."""
    try:
        return Interval(start, end)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


def slot_key(staff_id, interval: Interval) -> str:
    """Canonical key of a (staff, interval) claim — staff id plus UTC start/end."""
    start = interval.start.astimezone(dt_timezone.utc)
    end = interval.end.astimezone(dt_timezone.utc)
    return f"{staff_id}|{start:%Y%m%dT%H%M%SZ}|{end:%Y%m%dT%H%M%SZ}"


def _check_weekday(weekday: int) -> None:
    if weekday not in range(7):
        raise ValidationError(f"Weekday must be 0–6, got {weekday!r}.")


# ── Salon-wide inputs ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class OpeningHours:
    weekday: int
    open_time: Optional[time_type]
    close_time: Optional[time_type]
    is_closed: bool = False

    def __post_init__(self):
        _check_weekday(self.weekday)
        if not self.is_closed:
            if self.open_time is None or self.close_time is None:
                raise ValidationError('Open days need both an opening and a closing time.')
            if self.close_time <= self.open_time:
                raise ValidationError(f"Closing time must be after opening time on weekday {self.weekday}.")


@dataclass(frozen=True)
class BookingRules:
    slot_granularity_minutes: int = 15
    lead_time_minutes: int = 60
    horizon_days: int = 30
    buffer_between_minutes: int = 0
    cancellation_deadline_hours: int = 24

    def __post_init__(self):
        if self.slot_granularity_minutes <= 0:
            raise ValidationError('slot_granularity_minutes must be greater than 0.')
        for name in ('lead_time_minutes', 'horizon_days', 'buffer_between_minutes',
                     'cancellation_deadline_hours'):
            if getattr(self, name) < 0:
                raise ValidationError(f"{name} must not be negative.")

    @property
    def granularity(self) -> timedelta:
        return timedelta(minutes=self.slot_granularity_minutes)

    @property
    def lead_time(self) -> timedelta:
        return timedelta(minutes=self.lead_time_minutes)

    @property
    def buffer(self) -> timedelta:
        return timedelta(minutes=self.buffer_between_minutes)

    def last_bookable_date(self, today: date_type) -> date_type:
        return today + timedelta(days=self.horizon_days)


@dataclass(frozen=True)
class BlockedTime:
    """staff_id None blocks the whole salon."""
    staff_id: Optional[UUID]
    interval: Interval

    def applies_to(self, staff_id) -> bool:
        return self.staff_id is None or self.staff_id == staff_id


# ── Catalog & roster ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class BookableService:
    id: UUID
    name: str
    duration_minutes: int
    price_cents: int
    is_active: bool = True

    def __post_init__(self):
        if self.duration_minutes <= 0:
            raise ValidationError(f"Service '{self.name}' must have a positive duration.")
        if self.price_cents < 0:
            raise ValidationError(f"Service '{self.name}' must not have a negative price.")


@dataclass(frozen=True)
class StaffMember:
    id: UUID
    name: str
    service_ids: FrozenSet[UUID] = frozenset()
    is_bookable: bool = True

    def can_perform(self, service_ids) -> bool:
        return set(service_ids) <= self.service_ids


@dataclass(frozen=True)
class WorkingHours:
    staff_id: UUID
    weekday: int
    start_time: time_type
    end_time: time_type

    def __post_init__(self):
        _check_weekday(self.weekday)
        if self.end_time <= self.start_time:
            raise ValidationError('Working hours must end after they start.')


@dataclass(frozen=True)
class StaffAbsence:
    staff_id: UUID
    interval: Interval


# ── Occupied time ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ExistingAppointment:
    id: UUID
    staff_id: UUID
    interval: Interval
    status: str

    @property
    def occupies_time(self) -> bool:
        return self.status != CANCELLED


@dataclass(frozen=True)
class HeldSlot:
    """A SlotReservation as seen by the calculator."""
    reservation_id: UUID
    staff_id: UUID
    interval: Interval
    expires_at: datetime

    def is_live(self, now: datetime) -> bool:
        return self.expires_at > now


# ── Aggregate ─────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SalonCalendar:
    """Everything the calculator needs to know about one salon for a date range."""
    timezone: tzinfo
    opening_hours: Tuple[OpeningHours, ...] = ()
    staff: Tuple[StaffMember, ...] = ()
    services: Tuple[BookableService, ...] = ()
    working_hours: Tuple[WorkingHours, ...] = ()
    absences: Tuple[StaffAbsence, ...] = ()
    blocked_times: Tuple[BlockedTime, ...] = ()
    appointments: Tuple[ExistingAppointment, ...] = ()
    reservations: Tuple[HeldSlot, ...] = ()

    def __post_init__(self):
        weekdays = [oh.weekday for oh in self.opening_hours]
        if len(weekdays) != len(set(weekdays)):
            raise ValidationError('At most one opening-hours record per weekday is allowed.')

        by_day = {}
        for wh in self.working_hours:
            by_day.setdefault((wh.staff_id, wh.weekday), []).append(wh)
        for windows in by_day.values():
            windows.sort(key=lambda w: w.start_time)
            for prev, nxt in zip(windows, windows[1:]):
                if nxt.start_time < prev.end_time:
                    raise ValidationError(
                        f"Working windows of staff {prev.staff_id} overlap on weekday {prev.weekday}."
                    )

    def opening_for(self, weekday: int) -> Optional[OpeningHours]:
        return next((oh for oh in self.opening_hours if oh.weekday == weekday), None)

    def service(self, service_id) -> Optional[BookableService]:
        return next((s for s in self.services if str(s.id) == str(service_id)), None)

    def local_datetime(self, day: date_type, t: time_type) -> datetime:
        """Wall-clock time in the salon as an absolute UTC instant."""
        return datetime.combine(day, t, tzinfo=self.timezone).astimezone(dt_timezone.utc)

    def day_window(self, day: date_type) -> Interval:
        """The absolute span of a salon-local calendar day."""
        return Interval(
            self.local_datetime(day, time_type.min),
            self.local_datetime(day + timedelta(days=1), time_type.min),
        )


# ── Calculator output ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ServiceLine:
    service_id: UUID
    name: str
    duration_minutes: int
    price_cents: int


@dataclass(frozen=True)
class AvailableSlot:
    staff_id: UUID
    staff_name: str
    starts_at: datetime
    ends_at: datetime
    total_duration: int
    services: Tuple[ServiceLine, ...] = ()

    @property
    def interval(self) -> Interval:
        return Interval(self.starts_at, self.ends_at)

    @property
    def total_price_cents(self) -> int:
        return sum(line.price_cents for line in self.services)

    def as_dict(self) -> dict:
        return {
            'staff_id': str(self.staff_id),
            'staff_name': self.staff_name,
            'starts_at': self.starts_at.isoformat(),
            'ends_at': self.ends_at.isoformat(),
            'total_duration': self.total_duration,
            'total_price_cents': self.total_price_cents,
            'services': [
                {
                    'service_id': str(line.service_id),
                    'name': line.name,
                    'duration_minutes': line.duration_minutes,
                    'price_cents': line.price_cents,
                }
                for line in self.services
            ],
        }


@dataclass(frozen=True)
class SlotsByDate:
    date: date_type
    slots: Tuple[AvailableSlot, ...] = field(default_factory=tuple)

    def as_dict(self) -> dict:
        return {'date': self.date.isoformat(), 'slots': [s.as_dict() for s in self.slots]}
