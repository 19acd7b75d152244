"""
Availability calculator — pure slot computation over a SalonCalendar.

No database access and no clock: callers pass `now`, so a computation can be
replayed exactly in tests.

Per qualified staff member and day:

    free = (working windows ∩ opening hours)
           − absences − blocked times (own + salon-wide)
           − appointments − live reservations      (both padded by the buffer)

Start times are then laid on the granularity grid (anchored at the salon's
local midnight) wherever the full chained service duration fits.
"""
from datetime import date as date_type, datetime, timedelta
from typing import Iterator, List, Sequence, Tuple

from .calendar import (
    AvailableSlot,
    BookableService,
    BookingRules,
    SalonCalendar,
    ServiceLine,
    SlotsByDate,
)
from .exceptions import OutsideBookingWindow, ValidationError
from .intervals import Interval, IntervalSet


def compute_slots(calendar: SalonCalendar, date_from: date_type, date_to: date_type,
                  service_ids: Sequence, rules: BookingRules, now: datetime,
                  preferred_staff_id=None) -> List[AvailableSlot]:
    """
    Return every bookable slot for the requested services between date_from and
    date_to (inclusive, salon-local dates), sorted by start time then staff name.

    Raises ValidationError for a reversed range or an invalid service list and
    OutsideBookingWindow when date_to lies beyond the booking horizon.
    An empty list means there is no capacity; that is not an error.
    """
    services = resolve_services(calendar, service_ids)
    today = now.astimezone(calendar.timezone).date()
    check_date_range(date_from, date_to, rules, today)

    total_minutes = sum(s.duration_minutes for s in services)
    duration = timedelta(minutes=total_minutes)
    lines = tuple(
        ServiceLine(s.id, s.name, s.duration_minutes, s.price_cents) for s in services
    )

    candidates = qualified_staff(calendar, services, preferred_staff_id)
    earliest = now + rules.lead_time
    first_day = max(date_from, today)

    slots = []
    for member in candidates:
        blocked, occupied = _unavailable_time(calendar, member.id, rules, now)
        for day in _days(first_day, date_to):
            free = _free_time(calendar, member.id, day) - blocked - occupied
            anchor = calendar.day_window(day).start
            for interval in free:
                for start in _grid_starts(interval, duration, rules.granularity, anchor):
                    if start < earliest:
                        continue
                    slots.append(AvailableSlot(
                        staff_id=member.id,
                        staff_name=member.name,
                        starts_at=start.astimezone(calendar.timezone),
                        ends_at=(start + duration).astimezone(calendar.timezone),
                        total_duration=total_minutes,
                        services=lines,
                    ))

    slots.sort(key=lambda s: (s.starts_at, s.staff_name, str(s.staff_id)))
    return slots


def group_slots_by_date(slots: Sequence[AvailableSlot]) -> List[SlotsByDate]:
    """Group slots by their local calendar date, keeping slot order within a day."""
    grouped = {}
    for slot in slots:
        grouped.setdefault(slot.starts_at.date(), []).append(slot)
    return [SlotsByDate(day, tuple(day_slots)) for day, day_slots in sorted(grouped.items())]


# ── Input checks ──────────────────────────────────────────────────────────────

def resolve_services(calendar: SalonCalendar, service_ids: Sequence) -> List[BookableService]:
    """Look up the requested services in request order. All must exist and be active."""
    if not service_ids:
        raise ValidationError('Select at least one service.', {'services': 'required'})

    keys = [str(sid) for sid in service_ids]
    if len(set(keys)) != len(keys):
        raise ValidationError('Each service can only be selected once.', {'services': 'duplicate'})

    resolved = []
    for sid in service_ids:
        service = calendar.service(sid)
        if service is None:
            raise ValidationError(f"Unknown service '{sid}'.", {'services': 'unknown'})
        if not service.is_active:
            raise ValidationError(f"Service '{service.name}' is not bookable.", {'services': 'inactive'})
        resolved.append(service)
    return resolved


def check_date_range(date_from: date_type, date_to: date_type, rules: BookingRules,
                     today: date_type) -> None:
    if date_from > date_to:
        raise ValidationError('The start date must not be after the end date.', {'from': 'after_to'})
    if date_to > rules.last_bookable_date(today):
        raise OutsideBookingWindow(
            f"Bookings are possible at most {rules.horizon_days} days in advance.",
            {'to': 'beyond_horizon'},
        )


def qualified_staff(calendar: SalonCalendar, services: Sequence[BookableService],
                    preferred_staff_id=None) -> list:
    """Bookable staff who can perform every requested service."""
    required = {s.id for s in services}
    staff = [m for m in calendar.staff if m.is_bookable and m.can_perform(required)]
    if preferred_staff_id is not None:
        staff = [m for m in staff if str(m.id) == str(preferred_staff_id)]
    return staff


# ── Interval assembly ─────────────────────────────────────────────────────────

def _days(first: date_type, last: date_type) -> Iterator[date_type]:
    day = first
    while day <= last:
        yield day
        day += timedelta(days=1)


def _free_time(calendar: SalonCalendar, staff_id, day: date_type) -> IntervalSet:
    """Working windows of the day clipped to the salon's opening hours."""
    opening = calendar.opening_for(day.weekday())
    if opening is None or opening.is_closed:
        return IntervalSet()

    windows = IntervalSet(
        Interval(calendar.local_datetime(day, wh.start_time), calendar.local_datetime(day, wh.end_time))
        for wh in calendar.working_hours
        if wh.staff_id == staff_id and wh.weekday == day.weekday()
    )
    if not windows:
        return IntervalSet()

    open_hours = IntervalSet([Interval(
        calendar.local_datetime(day, opening.open_time),
        calendar.local_datetime(day, opening.close_time),
    )])
    return windows & open_hours


def _blocked_time(calendar: SalonCalendar, staff_id) -> IntervalSet:
    return IntervalSet(
        [a.interval for a in calendar.absences if a.staff_id == staff_id]
        + [b.interval for b in calendar.blocked_times if b.applies_to(staff_id)]
    )


def _unavailable_time(calendar: SalonCalendar, staff_id, rules: BookingRules,
                      now: datetime) -> Tuple[IntervalSet, IntervalSet]:
    """
    (blocked, occupied) for one staff member over the whole loaded range.
    Only occupied time (appointments, live holds) carries the buffer.
    """
    blocked = _blocked_time(calendar, staff_id)
    busy = (
        [a.interval for a in calendar.appointments if a.staff_id == staff_id and a.occupies_time]
        + [h.interval for h in calendar.reservations if h.staff_id == staff_id and h.is_live(now)]
    )
    occupied = IntervalSet(interval.padded(rules.buffer) for interval in busy)
    return blocked, occupied


def _grid_starts(interval: Interval, duration: timedelta, granularity: timedelta,
                 anchor: datetime) -> Iterator[datetime]:
    """Grid-aligned starts whose [start, start + duration) fits inside the interval."""
    steps = (interval.start - anchor) // granularity
    start = anchor + steps * granularity
    if start < interval.start:
        start += granularity
    while start + duration <= interval.end:
        yield start
        start += granularity


def is_within_working_time(calendar: SalonCalendar, staff_id, interval: Interval) -> bool:
    """
    True if the staff member is scheduled and present for the whole interval:
    inside a working window and opening hours, clear of absences and blocks.
    Appointments and holds are not considered here.
    """
    day = interval.start.astimezone(calendar.timezone).date()
    free = _free_time(calendar, staff_id, day) - _blocked_time(calendar, staff_id)
    return any(window.contains(interval) for window in free)
