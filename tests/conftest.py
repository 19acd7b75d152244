"""
Shared fixtures.

All scenarios are pinned to a fixed clock: "now" is Sunday 2030-01-06 12:00 in
Zurich and bookings target Monday 2030-01-07, so lead time and horizon never
depend on the real date.
"""
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

import pytest

from apps.bookings.intervals import Interval

ZURICH = ZoneInfo('Europe/Zurich')
MONDAY = date(2030, 1, 7)
NOW = datetime(2030, 1, 6, 12, 0, tzinfo=ZURICH)


def at(day, hour, minute=0):
    return datetime.combine(day, time(hour, minute), tzinfo=ZURICH)


def span(day, start, end):
    """span(MONDAY, '10:00', '10:30') → Interval in Zurich wall-clock time."""
    return Interval(at(day, *_hm(start)), at(day, *_hm(end)))


def _hm(value):
    hour, minute = value.split(':')
    return int(hour), int(minute)


def local_times(slots):
    return [s.starts_at.astimezone(ZURICH).strftime('%H:%M') for s in slots]


# ── Database fixtures ─────────────────────────────────────────────────────────

@pytest.fixture
def salon(db):
    from apps.salons.models import OpeningHours, Salon

    salon = Salon.objects.create(name='Salon Lumière', timezone='Europe/Zurich')
    for weekday in range(7):
        OpeningHours.objects.create(
            salon=salon, weekday=weekday, open_time=time(8, 0), close_time=time(20, 0),
        )
    return salon


@pytest.fixture
def rules(salon):
    from apps.salons.models import BookingRules

    return BookingRules.objects.create(
        salon=salon, slot_granularity_minutes=15, lead_time_minutes=60,
        horizon_days=30, buffer_between_minutes=0, cancellation_deadline_hours=24,
    )


@pytest.fixture
def haircut(salon):
    from apps.services.models import BookableService

    return BookableService.objects.create(salon=salon, name='Haircut', duration_minutes=30, price_cents=4500)


@pytest.fixture
def blowdry(salon):
    from apps.services.models import BookableService

    return BookableService.objects.create(salon=salon, name='Blow-dry', duration_minutes=20, price_cents=3000)


def _staff(salon, name, services, start=time(9, 0), end=time(17, 0)):
    from apps.staff.models import Staff, StaffWorkingHours

    member = Staff.objects.create(salon=salon, name=name)
    member.services.set(services)
    StaffWorkingHours.objects.create(staff=member, weekday=MONDAY.weekday(), start_time=start, end_time=end)
    return member


@pytest.fixture
def anna(salon, rules, haircut, blowdry):
    """Works Monday 09:00–17:00, offers haircut and blow-dry."""
    return _staff(salon, 'Anna', [haircut, blowdry])


@pytest.fixture
def ben(salon, rules, haircut):
    """Works Monday 09:00–17:00, haircut only."""
    return _staff(salon, 'Ben', [haircut])


@pytest.fixture
def make_hold(anna, haircut):
    """Hold a 30-minute haircut with Anna on Monday."""
    from apps.bookings.reservations import hold

    def _make(start='14:00', holder_key='holder-a', staff=None, now=NOW, **kwargs):
        starts_at = at(MONDAY, *_hm(start))
        interval = Interval(starts_at, starts_at + timedelta(minutes=30))
        kwargs.setdefault('service_ids', [haircut.pk])
        return hold((staff or anna).pk, interval, holder_key, now=now, **kwargs)

    return _make
