"""
JSON endpoints over the booking engine.

Thin views: parse the request, call the engine, translate BookingEngineError
subclasses to HTTP status codes. No templates, no authentication; holds are
keyed by an opaque holder key (JSON `holder_key`, else the session key).
"""
import json
import logging
from datetime import datetime

from django.http import HttpResponse, JsonResponse
from django.utils.dateparse import parse_datetime
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from .engine import get_slots_by_date
from .exceptions import (
    BookingEngineError,
    ReservationExpired,
    SlotAlreadyTaken,
    StaffUnavailable,
    ValidationError,
)
from .finalizer import CustomerInfo, cancel_appointment, confirm
from .reservations import hold_slot, release

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (ReservationExpired, 410),
    (SlotAlreadyTaken, 409),
    (StaffUnavailable, 409),
    (ValidationError, 400),
)

# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

def _error_response(exc: BookingEngineError) -> JsonResponse:
    status = next((code for cls, code in _STATUS_BY_ERROR if isinstance(exc, cls)), 400)
    logger.info("Booking request rejected: %s %s", exc.code, exc.field_errors or exc.message)
    body = {'error': exc.code, 'message': exc.message}
    if exc.field_errors:
        body['fields'] = exc.field_errors
    return JsonResponse(body, status=status)


def _parse_date(date_str: str, field: str):
    try:
        return datetime.strptime(date_str, '%Y-%m-%d').date()
    except (ValueError, TypeError):
        raise ValidationError(f"'{field}' must be a date in YYYY-MM-DD format.", {field: 'invalid'})


def _parse_instant(value, field: str) -> datetime:
    try:
        parsed = parse_datetime(value) if isinstance(value, str) else None
    except ValueError:
        parsed = None
    if parsed is None or parsed.tzinfo is None:
        raise ValidationError(f"'{field}' must be an ISO 8601 datetime with a UTC offset.", {field: 'invalid'})
    return parsed


def _json_body(request) -> dict:
    if not request.body:
        return {}
    try:
        payload = json.loads(request.body)
    except (ValueError, UnicodeDecodeError):
        raise ValidationError('Request body must be valid JSON.', {'body': 'invalid'})
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object.', {'body': 'invalid'})
    return payload


def _holder_key(request, payload: dict) -> str:
    key = payload.get('holder_key')
    if key:
        return str(key)
    if not request.session.session_key:
        request.session.save()
    return request.session.session_key


def _reservation_dict(reservation) -> dict:
    return {
        'reservation_id': str(reservation.pk),
        'staff_id': str(reservation.staff_id),
        'starts_at': reservation.starts_at.isoformat(),
        'ends_at': reservation.ends_at.isoformat(),
        'expires_at': reservation.expires_at.isoformat(),
        'holder_key': reservation.holder_key,
    }


# ─────────────────────────────────────────────────────────────────────────────
# Availability
# ─────────────────────────────────────────────────────────────────────────────

@require_GET
def api_slots(request, salon_id):
    """
    GET /api/salons/<salon_id>/slots/?from=YYYY-MM-DD&to=YYYY-MM-DD&services=<uuid>,<uuid>&staff=<uuid>
    """
    try:
        date_from = _parse_date(request.GET.get('from'), 'from')
        date_to = _parse_date(request.GET.get('to') or request.GET.get('from'), 'to')
        service_ids = [s for s in request.GET.get('services', '').split(',') if s.strip()]
        days = get_slots_by_date(
            salon_id, date_from, date_to, [s.strip() for s in service_ids],
            preferred_staff_id=request.GET.get('staff') or None,
        )
    except BookingEngineError as exc:
        return _error_response(exc)

    return JsonResponse({
        'salon_id': str(salon_id),
        'from': date_from.isoformat(),
        'to': date_to.isoformat(),
        'days': [day.as_dict() for day in days],
    })


# ─────────────────────────────────────────────────────────────────────────────
# Reservations
# ─────────────────────────────────────────────────────────────────────────────

@csrf_exempt
@require_POST
def api_hold(request):
    """
    POST /api/reservations/
    {"staff_id", "starts_at", "ends_at", "services": [...], "holder_key"?}
    """
    try:
        payload = _json_body(request)
        services = payload.get('services') or []
        if not isinstance(services, list):
            raise ValidationError("'services' must be a list of ids.", {'services': 'invalid'})
        reservation = hold_slot(
            payload.get('staff_id'),
            _parse_instant(payload.get('starts_at'), 'starts_at'),
            _parse_instant(payload.get('ends_at'), 'ends_at'),
            _holder_key(request, payload),
            service_ids=services,
        )
    except BookingEngineError as exc:
        return _error_response(exc)

    return JsonResponse(_reservation_dict(reservation), status=201)


@csrf_exempt
@require_POST
def api_release(request, reservation_id):
    """POST /api/reservations/<id>/release/ — always 204, releasing twice is fine."""
    try:
        payload = _json_body(request)
    except BookingEngineError as exc:
        return _error_response(exc)
    release(reservation_id, holder_key=_holder_key(request, payload))
    return HttpResponse(status=204)


# ─────────────────────────────────────────────────────────────────────────────
# Confirmation & cancellation
# ─────────────────────────────────────────────────────────────────────────────

@csrf_exempt
@require_POST
def api_confirm(request, reservation_id):
    """
    POST /api/reservations/<id>/confirm/
    {"customer": {"name", "phone", "email", "notes"}, "payment_method", "payment_reference"?, "holder_key"?}
    """
    try:
        payload = _json_body(request)
        customer = payload.get('customer') or {}
        if not isinstance(customer, dict):
            raise ValidationError("'customer' must be an object.", {'customer': 'invalid'})
        confirmation = confirm(
            reservation_id,
            CustomerInfo(
                name=str(customer.get('name') or ''),
                phone=str(customer.get('phone') or ''),
                email=str(customer.get('email') or ''),
                notes=str(customer.get('notes') or ''),
            ),
            payment_method=str(payload.get('payment_method') or ''),
            payment_reference=str(payload.get('payment_reference') or ''),
            holder_key=_holder_key(request, payload),
        )
    except BookingEngineError as exc:
        return _error_response(exc)

    return JsonResponse(confirmation.as_dict(), status=201)


@csrf_exempt
@require_POST
def api_cancel(request, appointment_id):
    """POST /api/appointments/<id>/cancel/ {"reason"?} — customer cancellation."""
    try:
        payload = _json_body(request)
        appointment = cancel_appointment(
            appointment_id, changed_by='customer', reason=str(payload.get('reason') or ''),
        )
    except BookingEngineError as exc:
        return _error_response(exc)

    return JsonResponse({
        'appointment_id': str(appointment.pk),
        'booking_number': appointment.booking_number,
        'status': appointment.status,
    })
