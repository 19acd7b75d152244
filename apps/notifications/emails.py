"""
Email notifications for appointments.

Synchronous; callers schedule these with transaction.on_commit so nothing is
sent for a booking that was rolled back.

Public API:
  send_booking_confirmed(appointment)
  send_booking_cancelled(appointment, reason='')
"""
import logging
from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string
from django.utils import timezone

logger = logging.getLogger(__name__)


def _appointment_context(appointment) -> dict:
    """Common template context for all appointment emails, times in the salon's zone."""
    tz = appointment.salon.tz
    return {
        'customer_name':  appointment.customer_name,
        'salon_name':     appointment.salon.name,
        'staff_name':     appointment.staff.name,
        'services':       list(appointment.service_lines.all()),
        'starts_at':      timezone.localtime(appointment.starts_at, tz),
        'ends_at':        timezone.localtime(appointment.ends_at, tz),
        'duration':       appointment.duration_minutes,
        'total':          f"{appointment.total_cents / 100:.2f}",
        'payment_method': appointment.get_payment_method_display(),
        'payment_status': appointment.get_payment_status_display(),
        'booking_number': appointment.booking_number,
        'site_url':       getattr(settings, 'SITE_URL', ''),
        'support_email':  settings.DEFAULT_FROM_EMAIL,
    }


def _send(subject: str, to_email: str, html_template: str, txt_template: str, context: dict) -> bool:
    """Builds a multipart email with HTML + text fallback. Returns True if sent."""
    if not to_email:
        logger.warning('Email skipped, no address for booking %s', context.get('booking_number'))
        return False

    try:
        text_body = render_to_string(txt_template, context)
        html_body = render_to_string(html_template, context)

        msg = EmailMultiAlternatives(
            subject=subject,
            body=text_body,
            from_email=settings.DEFAULT_FROM_EMAIL,
            to=[to_email],
        )
        msg.attach_alternative(html_body, 'text/html')
        msg.send(fail_silently=False)
        logger.info('Email "%s" sent to %s', subject, to_email)
        return True
    except Exception:
        # appointment is already committed
        logger.exception('Failed to send email "%s" to %s', subject, to_email)
        return False


def send_booking_confirmed(appointment) -> bool:
    """Triggered after the finalizer commits an appointment."""
    ctx = _appointment_context(appointment)
    with timezone.override(appointment.salon.tz):
        return _send(
            subject=f'Booking Confirmed - {ctx["salon_name"]} on {ctx["starts_at"]:%d %b %Y}',
            to_email=appointment.customer_email,
            html_template='emails/booking_confirmed.html',
            txt_template='emails/booking_confirmed.txt',
            context=ctx,
        )


def send_booking_cancelled(appointment, reason: str = '') -> bool:
    ctx = _appointment_context(appointment)
    ctx['cancellation_reason'] = reason
    with timezone.override(appointment.salon.tz):
        return _send(
            subject=f'Booking Cancelled - {ctx["salon_name"]} on {ctx["starts_at"]:%d %b %Y}',
            to_email=appointment.customer_email,
            html_template='emails/booking_cancelled.html',
            txt_template='emails/booking_cancelled.txt',
            context=ctx,
        )
