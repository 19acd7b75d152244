"""
Staff models: Staff profile with its service capabilities, weekly working
hours, absences and blocked times.

Each staff member belongs to exactly one salon.
"""
from django.core.exceptions import ValidationError
from django.db import models
from apps.core.models import BaseModel, UUIDModel, TimestampedModel, WEEKDAY_CHOICES
from apps.salons.models import Salon
from apps.services.models import BookableService


class Staff(BaseModel):
    salon = models.ForeignKey(Salon, on_delete=models.CASCADE, related_name='staff')
    name = models.CharField(max_length=120)
    services = models.ManyToManyField(
        BookableService,
        related_name='staff',
        blank=True,
        help_text='Services this person can perform',
    )
    is_bookable = models.BooleanField(
        default=True, db_index=True,
        help_text='Offered for online booking',
    )
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        verbose_name = 'Staff Member'
        verbose_name_plural = 'Staff'
        ordering = ['salon', 'name']

    def __str__(self):
        return f"{self.name} — {self.salon.name}"


class StaffWorkingHours(UUIDModel):
    """
    One working window of a staff member on a weekday.
    Several rows per weekday model split shifts; they must not overlap.
    """
    staff = models.ForeignKey(Staff, on_delete=models.CASCADE, related_name='working_hours')
    weekday = models.IntegerField(choices=WEEKDAY_CHOICES)
    start_time = models.TimeField()
    end_time = models.TimeField()

    class Meta:
        verbose_name = 'Working Hours'
        verbose_name_plural = 'Working Hours'
        ordering = ['staff', 'weekday', 'start_time']

    def __str__(self):
        return (
            f"{self.staff.name} — {self.get_weekday_display()} "
            f"({self.start_time.strftime('%H:%M')}–{self.end_time.strftime('%H:%M')})"
        )

    def clean(self):
        if self.end_time <= self.start_time:
            raise ValidationError({'end_time': 'End time must be after start time.'})
        clashes = (
            StaffWorkingHours.objects
            .filter(
                staff_id=self.staff_id,
                weekday=self.weekday,
                start_time__lt=self.end_time,
                end_time__gt=self.start_time,
            )
            .exclude(pk=self.pk)
        )
        if clashes.exists():
            raise ValidationError('This window overlaps another working window on the same day.')


class StaffAbsence(UUIDModel, TimestampedModel):
    """Vacation, sick leave and similar. Blocks the staff member completely."""
    staff = models.ForeignKey(Staff, on_delete=models.CASCADE, related_name='absences')
    starts_at = models.DateTimeField(db_index=True)
    ends_at = models.DateTimeField()
    reason = models.CharField(max_length=255, blank=True)

    class Meta:
        verbose_name = 'Staff Absence'
        verbose_name_plural = 'Staff Absences'
        ordering = ['-starts_at']

    def __str__(self):
        return f"{self.staff.name} — absent {self.starts_at:%Y-%m-%d %H:%M} to {self.ends_at:%Y-%m-%d %H:%M}"

    def clean(self):
        if self.ends_at <= self.starts_at:
            raise ValidationError({'ends_at': 'Absence must end after it starts.'})


class BlockedTime(UUIDModel, TimestampedModel):
    """
    Time that cannot be booked. With staff unset the block applies to the whole
    salon (holidays, events).
    """
    salon = models.ForeignKey(Salon, on_delete=models.CASCADE, related_name='blocked_times')
    staff = models.ForeignKey(
        Staff, on_delete=models.CASCADE, null=True, blank=True, related_name='blocked_times',
    )
    starts_at = models.DateTimeField(db_index=True)
    ends_at = models.DateTimeField()
    reason = models.CharField(max_length=255, blank=True)

    class Meta:
        verbose_name = 'Blocked Time'
        verbose_name_plural = 'Blocked Times'
        ordering = ['-starts_at']

    def __str__(self):
        who = self.staff.name if self.staff_id else self.salon.name
        return f"Blocked: {who} {self.starts_at:%Y-%m-%d %H:%M} to {self.ends_at:%Y-%m-%d %H:%M}"

    def clean(self):
        if self.ends_at <= self.starts_at:
            raise ValidationError({'ends_at': 'Blocked time must end after it starts.'})
        if self.staff_id and self.staff.salon_id != self.salon_id:
            raise ValidationError({'staff': 'Staff member belongs to another salon.'})
