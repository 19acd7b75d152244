"""
Salon model — a bookable location with its own time zone, weekly opening
hours and booking policy.
"""
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from apps.core.models import BaseModel, TimestampedModel, WEEKDAY_CHOICES

DEFAULT_TIMEZONE = 'Europe/Zurich'


class Salon(BaseModel):
    name = models.CharField(max_length=120)
    timezone = models.CharField(
        max_length=64, default=DEFAULT_TIMEZONE,
        help_text='IANA zone name; opening and working hours are wall-clock times in this zone.',
    )
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        verbose_name = 'Salon'
        verbose_name_plural = 'Salons'
        ordering = ['name']

    def __str__(self):
        return self.name

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def clean(self):
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValidationError({'timezone': f"Unknown time zone '{self.timezone}'."})


class OpeningHours(models.Model):
    """One row per salon and weekday. Closed days keep their row with is_closed=True."""
    salon = models.ForeignKey(Salon, on_delete=models.CASCADE, related_name='opening_hours')
    weekday = models.IntegerField(choices=WEEKDAY_CHOICES)
    open_time = models.TimeField(null=True, blank=True)
    close_time = models.TimeField(null=True, blank=True)
    is_closed = models.BooleanField(default=False)

    class Meta:
        verbose_name = 'Opening Hours'
        verbose_name_plural = 'Opening Hours'
        unique_together = ('salon', 'weekday')
        ordering = ['weekday']

    def __str__(self):
        if self.is_closed:
            return f"{self.salon.name} - {self.get_weekday_display()}: Closed"
        return (
            f"{self.salon.name} - {self.get_weekday_display()}: "
            f"{self.open_time:%H:%M}–{self.close_time:%H:%M}"
        )

    def clean(self):
        if self.is_closed:
            return
        if self.open_time is None or self.close_time is None:
            raise ValidationError('Open days need both an opening and a closing time.')
        if self.close_time <= self.open_time:
            raise ValidationError({'close_time': 'Closing time must be after opening time.'})


class BookingRules(TimestampedModel):
    """
    Booking policy for a salon. Salons without a row fall back to the
    DEFAULT_* booking settings.
    """
    salon = models.OneToOneField(Salon, on_delete=models.CASCADE, related_name='booking_rules')
    slot_granularity_minutes = models.PositiveIntegerField(
        default=15, validators=[MinValueValidator(1)],
        help_text='Grid on which start times are offered (e.g. 15 or 30).',
    )
    lead_time_minutes = models.PositiveIntegerField(
        default=60, help_text='Minimum notice before a booking may start.',
    )
    horizon_days = models.PositiveIntegerField(
        default=30, help_text='How many days ahead customers may book.',
    )
    buffer_between_minutes = models.PositiveIntegerField(
        default=0, help_text='Idle time kept free around every appointment.',
    )
    cancellation_deadline_hours = models.PositiveIntegerField(
        default=24, help_text='Customers may cancel until this many hours before the start.',
    )

    class Meta:
        verbose_name = 'Booking Rules'
        verbose_name_plural = 'Booking Rules'

    def __str__(self):
        return f"Booking rules — {self.salon.name}"

    @classmethod
    def defaults(cls) -> dict:
        return {
            'slot_granularity_minutes': settings.DEFAULT_SLOT_GRANULARITY_MINUTES,
            'lead_time_minutes': settings.DEFAULT_LEAD_TIME_MINUTES,
            'horizon_days': settings.DEFAULT_HORIZON_DAYS,
            'buffer_between_minutes': settings.DEFAULT_BUFFER_BETWEEN_MINUTES,
            'cancellation_deadline_hours': settings.DEFAULT_CANCELLATION_DEADLINE_HOURS,
        }
