"""
Bookings app models:
  - SlotReservation     : short-lived exclusive hold on a (staff, interval) pair
  - ReservationService  : ordered services a hold was made for
  - Appointment         : committed booking record with state machine
  - AppointmentService  : price/duration snapshot of each booked service
  - AppointmentStatusLog: audit trail of appointment state transitions
"""
from django.db import models
from django.utils import timezone
from apps.core.models import BaseModel, UUIDModel
from apps.customers.models import Customer
from apps.salons.models import Salon
from apps.services.models import BookableService
from apps.staff.models import Staff

from .calendar import CANCELLED, slot_key
from .intervals import Interval


# ── Slot Reservation ──────────────────────────────────────────────────────────

class SlotReservation(UUIDModel):
    """
    Time-boxed claim on a slot, taken when the customer picks a time and held
    through checkout.
    Destroyed when:
      - the finalizer turns it into an Appointment (same transaction)
      - the holder releases it
      - it expires and is swept
    Expired rows never count as occupied time, even before they are swept.
    """
    slot_key = models.CharField(max_length=160, unique=True)
    salon = models.ForeignKey(Salon, on_delete=models.CASCADE, related_name='reservations')
    staff = models.ForeignKey(Staff, on_delete=models.CASCADE, related_name='reservations')
    starts_at = models.DateTimeField(db_index=True)
    ends_at = models.DateTimeField()
    holder_key = models.CharField(
        max_length=64, db_index=True,
        help_text='Opaque session/holder identifier supplied by the caller',
    )
    customer = models.ForeignKey(
        Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name='reservations',
    )
    services = models.ManyToManyField(
        BookableService, through='ReservationService', related_name='+', blank=True,
    )
    created_at = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField(db_index=True)

    class Meta:
        verbose_name = 'Slot Reservation'
        verbose_name_plural = 'Slot Reservations'
        ordering = ['starts_at']

    def __str__(self):
        return (
            f"Hold: {self.staff.name} {self.starts_at:%Y-%m-%d %H:%M}–{self.ends_at:%H:%M} "
            f"[expires {self.expires_at:%H:%M:%S}]"
        )

    def save(self, *args, **kwargs):
        self.slot_key = slot_key(self.staff_id, self.interval)
        super().save(*args, **kwargs)

    @property
    def interval(self) -> Interval:
        return Interval(self.starts_at, self.ends_at)

    def is_expired(self, now=None) -> bool:
        return (now or timezone.now()) >= self.expires_at

    def ordered_services(self):
        return [line.service for line in self.service_lines.select_related('service')]


class ReservationService(models.Model):
    reservation = models.ForeignKey(SlotReservation, on_delete=models.CASCADE, related_name='service_lines')
    service = models.ForeignKey(BookableService, on_delete=models.CASCADE, related_name='+')
    position = models.PositiveSmallIntegerField(default=0)

    class Meta:
        ordering = ['position']
        unique_together = [('reservation', 'position')]


# ── Appointment State Machine ─────────────────────────────────────────────────

class AppointmentStatus(models.TextChoices):
    CONFIRMED = 'CONFIRMED', 'Confirmed'
    COMPLETED = 'COMPLETED', 'Completed'
    CANCELLED = 'CANCELLED', 'Cancelled'
    NO_SHOW   = 'NO_SHOW',   'No-show'


class PaymentMethod(models.TextChoices):
    ONLINE   = 'ONLINE',   'Online'
    AT_VENUE = 'AT_VENUE', 'Pay at venue'


class PaymentStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    PAID    = 'PAID',    'Paid'


class Appointment(BaseModel):
    """
    Durable booking created by the finalizer from a live reservation.
    Status transitions go through the explicit methods below, never direct writes.
    Every status except CANCELLED keeps the time occupied.
    """
    booking_number = models.CharField(max_length=32, unique=True)
    salon = models.ForeignKey(Salon, on_delete=models.PROTECT, related_name='appointments')
    staff = models.ForeignKey(Staff, on_delete=models.PROTECT, related_name='appointments')
    customer = models.ForeignKey(
        Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name='appointments',
    )

    starts_at = models.DateTimeField(db_index=True)
    ends_at = models.DateTimeField()
    duration_minutes = models.PositiveIntegerField()

    status = models.CharField(
        max_length=20, choices=AppointmentStatus.choices,
        default=AppointmentStatus.CONFIRMED, db_index=True,
    )
    payment_method = models.CharField(max_length=10, choices=PaymentMethod.choices)
    payment_status = models.CharField(
        max_length=10, choices=PaymentStatus.choices, default=PaymentStatus.PENDING,
    )
    payment_reference = models.CharField(
        max_length=100, blank=True,
        help_text='Reference of the verified payment returned by the payment provider',
    )
    total_cents = models.PositiveIntegerField(default=0)

    # Contact snapshot at booking time
    customer_name = models.CharField(max_length=120)
    customer_email = models.EmailField(blank=True)
    customer_phone = models.CharField(max_length=20, blank=True)
    notes = models.TextField(blank=True)

    confirmed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = 'Appointment'
        verbose_name_plural = 'Appointments'
        ordering = ['-starts_at']
        # DB-level guard: no two live appointments start together for one staff member
        constraints = [
            models.UniqueConstraint(
                fields=['staff', 'starts_at'],
                condition=~models.Q(status=CANCELLED),
                name='uq_live_appointment_slot',
            )
        ]

    def __str__(self):
        return f"#{self.booking_number} | {self.customer_name} | {self.staff.name} | {self.starts_at:%Y-%m-%d %H:%M}"

    @property
    def interval(self) -> Interval:
        return Interval(self.starts_at, self.ends_at)

    # ── State transition helpers ──────────────────────────────────────────────

    def complete(self, changed_by='staff'):
        """Mark the service as delivered."""
        self._transition(AppointmentStatus.COMPLETED, changed_by)
        self.save(update_fields=['status', 'updated_at'])

    def mark_no_show(self, changed_by='staff'):
        self._transition(AppointmentStatus.NO_SHOW, changed_by)
        self.save(update_fields=['status', 'updated_at'])

    def cancel(self, changed_by='customer', reason='', now=None):
        """Frees the time immediately."""
        self._transition(AppointmentStatus.CANCELLED, changed_by, reason)
        self.cancelled_at = now or timezone.now()
        self.save(update_fields=['status', 'cancelled_at', 'updated_at'])

    def _transition(self, new_status, changed_by, reason=''):
        # only confirmed appointments move on; every other status is final
        if self.status != AppointmentStatus.CONFIRMED:
            raise ValueError(
                f"Appointment {self.booking_number} cannot change from {self.get_status_display()} "
                f"to {AppointmentStatus(new_status).label}."
            )
        old_status = self.status
        self.status = new_status
        AppointmentStatusLog.objects.create(
            appointment=self,
            from_status=old_status,
            to_status=new_status,
            changed_by=changed_by,
            reason=reason,
        )


class AppointmentService(models.Model):
    """Snapshot of a booked service; survives later catalog edits."""
    appointment = models.ForeignKey(Appointment, on_delete=models.CASCADE, related_name='service_lines')
    service = models.ForeignKey(
        BookableService, on_delete=models.SET_NULL, null=True, blank=True, related_name='+',
    )
    service_name = models.CharField(max_length=150)
    duration_minutes = models.PositiveIntegerField()
    price_cents = models.PositiveIntegerField()
    position = models.PositiveSmallIntegerField(default=0)

    class Meta:
        ordering = ['position']

    def __str__(self):
        return f"{self.service_name} ({self.duration_minutes} min)"


# ── Appointment Audit Log ─────────────────────────────────────────────────────

class AppointmentStatusLog(UUIDModel):
    """Immutable audit trail of every status transition on an appointment."""
    appointment = models.ForeignKey(Appointment, on_delete=models.CASCADE, related_name='status_logs')
    from_status = models.CharField(max_length=20, choices=AppointmentStatus.choices, blank=True)
    to_status = models.CharField(max_length=20, choices=AppointmentStatus.choices)
    changed_by = models.CharField(max_length=80, help_text='customer / staff / system')
    reason = models.TextField(blank=True)
    changed_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Appointment Status Log'
        verbose_name_plural = 'Appointment Status Logs'
        ordering = ['changed_at']

    def __str__(self):
        return f"Appointment {self.appointment.booking_number}: {self.from_status or '—'} → {self.to_status}"
