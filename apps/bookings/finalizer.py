"""
Booking finalizer — turns a live hold into a committed Appointment.

Payment is verified by the caller's payment collaborator before confirm() is
called; this module only records the outcome. The confirmation email is sent
after commit, never inside the transaction.

Public API:
  confirm(reservation_id, customer_info, payment_method, payment_reference='', holder_key=None, now=None)
  cancel_appointment(appointment_id, changed_by='customer', reason='', now=None)
"""
import logging
import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email
from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.customers.models import Customer, normalize_phone
from apps.notifications.emails import send_booking_cancelled, send_booking_confirmed

from .exceptions import CancellationDeadlinePassed, ReservationExpired, SlotAlreadyTaken, ValidationError
from .loaders import rules_for_salon
from .models import (
    Appointment,
    AppointmentService,
    AppointmentStatus,
    AppointmentStatusLog,
    PaymentMethod,
    PaymentStatus,
    SlotReservation,
)

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_uppercase


@dataclass(frozen=True)
class CustomerInfo:
    name: str
    phone: str = ''
    email: str = ''
    notes: str = ''


@dataclass(frozen=True)
class BookingConfirmation:
    appointment_id: object
    booking_number: str
    staff_id: object
    starts_at: datetime
    ends_at: datetime
    total_cents: int
    payment_status: str

    def as_dict(self) -> dict:
        return {
            'appointment_id': str(self.appointment_id),
            'booking_number': self.booking_number,
            'staff_id': str(self.staff_id),
            'starts_at': self.starts_at.isoformat(),
            'ends_at': self.ends_at.isoformat(),
            'total_cents': self.total_cents,
            'payment_status': self.payment_status,
        }


# ── Booking numbers ───────────────────────────────────────────────────────────

def _base36(number: int) -> str:
    digits = ''
    while number:
        number, rem = divmod(number, 36)
        digits = _BASE36[rem] + digits
    return digits or '0'


def generate_booking_number(now: Optional[datetime] = None) -> str:
    """PREFIX-<ms timestamp in base36>-<4 random chars>, e.g. SB-LQ3K9Z1A-7F2C."""
    now = now or timezone.now()
    prefix = getattr(settings, 'BOOKING_NUMBER_PREFIX', 'SB')
    stamp = _base36(int(now.timestamp() * 1000))
    while True:
        number = f"{prefix}-{stamp}-{''.join(secrets.choice(_BASE36) for _ in range(4))}"
        if not Appointment.objects.filter(booking_number=number).exists():
            return number


# ── Confirm ───────────────────────────────────────────────────────────────────

def confirm(reservation_id, customer_info: CustomerInfo, payment_method: str,
            payment_reference: str = '', holder_key: Optional[str] = None,
            now: Optional[datetime] = None) -> BookingConfirmation:
    """
    Commit the appointment for a live reservation and delete the reservation,
    in one transaction.

    Raises:
      ValidationError    — bad contact details or payment outcome
      ReservationExpired — the hold is gone, expired, or belongs to another holder
      SlotAlreadyTaken   — an appointment was committed for the same start meanwhile
    """
    now = now or timezone.now()
    payment_status = _payment_status(payment_method, payment_reference)
    contact = _clean_contact(customer_info)

    with transaction.atomic():
        reservation = _lock_live_reservation(reservation_id, holder_key, now)
        customer, _ = Customer.get_or_create_for_contact(**contact)

        lines = list(reservation.service_lines.select_related('service'))
        duration = int(reservation.interval.duration / timedelta(minutes=1))

        try:
            with transaction.atomic():
                appointment = Appointment.objects.create(
                    booking_number=generate_booking_number(now),
                    salon=reservation.salon,
                    staff=reservation.staff,
                    customer=customer,
                    starts_at=reservation.starts_at,
                    ends_at=reservation.ends_at,
                    duration_minutes=duration,
                    status=AppointmentStatus.CONFIRMED,
                    payment_method=payment_method,
                    payment_status=payment_status,
                    payment_reference=payment_reference or '',
                    total_cents=sum(line.service.price_cents for line in lines),
                    customer_name=customer.name,
                    customer_email=customer.email,
                    customer_phone=customer.phone,
                    notes=customer_info.notes or '',
                    confirmed_at=now,
                )
        except IntegrityError:
            logger.warning('Appointment for staff %s at %s already exists',
                           reservation.staff_id, reservation.starts_at.isoformat())
            raise SlotAlreadyTaken()

        AppointmentService.objects.bulk_create([
            AppointmentService(
                appointment=appointment,
                service=line.service,
                service_name=line.service.name,
                duration_minutes=line.service.duration_minutes,
                price_cents=line.service.price_cents,
                position=line.position,
            )
            for line in lines
        ])
        AppointmentStatusLog.objects.create(
            appointment=appointment,
            from_status='',
            to_status=AppointmentStatus.CONFIRMED,
            changed_by='customer',
            reason=f'Confirmed from reservation {reservation.pk}',
        )
        reservation.delete()

        transaction.on_commit(lambda: send_booking_confirmed(appointment))

    logger.info('Appointment %s confirmed (%s, %s)',
                appointment.booking_number, payment_method, payment_status)
    return BookingConfirmation(
        appointment_id=appointment.pk,
        booking_number=appointment.booking_number,
        staff_id=appointment.staff_id,
        starts_at=appointment.starts_at,
        ends_at=appointment.ends_at,
        total_cents=appointment.total_cents,
        payment_status=appointment.payment_status,
    )


def _payment_status(payment_method: str, payment_reference: str) -> str:
    if payment_method not in PaymentMethod.values:
        raise ValidationError(f"Unknown payment method '{payment_method}'.", {'payment_method': 'invalid'})
    if payment_method == PaymentMethod.ONLINE:
        if not payment_reference:
            raise ValidationError('Online payments need a payment reference.',
                                  {'payment_reference': 'required'})
        return PaymentStatus.PAID
    return PaymentStatus.PENDING


def _clean_contact(info: CustomerInfo) -> dict:
    name = (info.name or '').strip()
    phone = (info.phone or '').strip()
    email = (info.email or '').strip()
    if not name:
        raise ValidationError('Please enter your name.', {'name': 'required'})
    if not (phone or email):
        raise ValidationError('Please enter a phone number or an e-mail address.', {'phone': 'required'})
    if email:
        try:
            validate_email(email)
        except DjangoValidationError:
            raise ValidationError('Please enter a valid e-mail address.', {'email': 'invalid'})
    if phone:
        try:
            normalize_phone(phone)
        except ValueError as exc:
            raise ValidationError(str(exc), {'phone': 'invalid'})
    return {'name': name, 'phone': phone, 'email': email}


def _lock_live_reservation(reservation_id, holder_key, now) -> SlotReservation:
    try:
        reservation = (
            SlotReservation.objects
            .select_for_update()
            .select_related('salon', 'staff')
            .filter(pk=reservation_id)
            .first()
        )
    except (DjangoValidationError, ValueError, TypeError):
        reservation = None

    if reservation is None:
        raise ReservationExpired()
    if holder_key is not None and reservation.holder_key != holder_key:
        logger.warning('Reservation %s confirmed by a different holder', reservation_id)
        raise ReservationExpired()
    if reservation.is_expired(now):
        logger.info('Reservation %s expired at %s', reservation_id, reservation.expires_at.isoformat())
        raise ReservationExpired()
    return reservation


# ── Cancel ────────────────────────────────────────────────────────────────────

@transaction.atomic
def cancel_appointment(appointment_id, changed_by: str = 'customer', reason: str = '',
                       now: Optional[datetime] = None) -> Appointment:
    """
    Cancel an appointment and free its time. Customers must cancel before the
    salon's cancellation deadline; staff and system cancellations are not limited.
    """
    now = now or timezone.now()
    try:
        appointment = (
            Appointment.objects
            .select_for_update()
            .select_related('salon', 'staff')
            .get(pk=appointment_id)
        )
    except (Appointment.DoesNotExist, DjangoValidationError, ValueError, TypeError):
        raise ValidationError(f"Unknown appointment '{appointment_id}'.", {'appointment': 'unknown'})

    if changed_by == 'customer':
        rules = rules_for_salon(appointment.salon)
        deadline = appointment.starts_at - timedelta(hours=rules.cancellation_deadline_hours)
        if now > deadline:
            raise CancellationDeadlinePassed(
                f"Appointments can be cancelled online up to {rules.cancellation_deadline_hours} "
                f"hours before they start. Please contact the salon."
            )

    try:
        appointment.cancel(changed_by=changed_by, reason=reason, now=now)
    except ValueError as exc:
        raise ValidationError(str(exc), {'status': appointment.status})

    transaction.on_commit(lambda: send_booking_cancelled(appointment, reason))
    logger.info('Appointment %s cancelled by %s', appointment.booking_number, changed_by)
    return appointment
