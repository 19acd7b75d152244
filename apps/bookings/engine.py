"""
Booking engine — database-backed entry points for availability, no HTTP/request awareness.

Public API:
  get_available_slots(salon_id, date_from, date_to, service_ids, preferred_staff_id=None, now=None)
  get_slots_by_date(salon_id, date_from, date_to, service_ids, preferred_staff_id=None, now=None)

Holds and confirmations live in reservations.py and finalizer.py.
Every call is a fresh computation; nothing is cached between requests.
"""
import logging
from datetime import date as date_type, datetime
from typing import List, Optional, Sequence

from django.utils import timezone

from .availability import check_date_range, compute_slots, group_slots_by_date
from .calendar import AvailableSlot, SlotsByDate
from .loaders import get_salon, load_salon_calendar, rules_for_salon

logger = logging.getLogger(__name__)


def get_available_slots(salon_id, date_from: date_type, date_to: date_type, service_ids: Sequence,
                        preferred_staff_id=None, now: Optional[datetime] = None) -> List[AvailableSlot]:
    """
    Load the salon's calendar for the range and compute bookable slots.
    Raises ValidationError / OutsideBookingWindow for bad input; an empty
    list just means the salon is fully booked or closed.
    """
    now = now or timezone.now()
    salon = get_salon(salon_id)
    rules = rules_for_salon(salon)
    check_date_range(date_from, date_to, rules, now.astimezone(salon.tz).date())
    calendar = load_salon_calendar(salon, date_from, date_to, service_ids, now)
    slots = compute_slots(calendar, date_from, date_to, service_ids, rules, now, preferred_staff_id)
    logger.debug('Salon %s %s..%s: %d slot(s) for %d service(s)',
                 salon.pk, date_from, date_to, len(slots), len(service_ids))
    return slots


def get_slots_by_date(salon_id, date_from: date_type, date_to: date_type, service_ids: Sequence,
                      preferred_staff_id=None, now: Optional[datetime] = None) -> List[SlotsByDate]:
    return group_slots_by_date(
        get_available_slots(salon_id, date_from, date_to, service_ids, preferred_staff_id, now)
    )
