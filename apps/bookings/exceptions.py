"""
Custom exceptions for the booking engine.
Raised by the calculator, reservation manager and finalizer; translated to
JSON responses in views.py.

"No availability" is never an exception: the calculator returns an empty list.
"""


class BookingEngineError(Exception):
    """Base exception for all booking engine errors."""
    code = 'BOOKING_ERROR'
    default_message = 'The booking could not be processed.'

    def __init__(self, message: str = '', field_errors: dict = None):
        self.message = message or self.default_message
        self.field_errors = field_errors or {}
        super().__init__(self.message)


class ValidationError(BookingEngineError):
    """Malformed input. Fatal to the request, never retried automatically."""
    code = 'VALIDATION_ERROR'
    default_message = 'The request is invalid.'


class OutsideBookingWindow(ValidationError):
    """Requested time is earlier than the lead time or beyond the booking horizon."""
    code = 'OUTSIDE_BOOKING_WINDOW'
    default_message = 'This time can no longer be booked online. Please pick another time.'


class CancellationDeadlinePassed(ValidationError):
    """Customer cancellation attempted after the salon's cancellation deadline."""
    code = 'CANCELLATION_DEADLINE_PASSED'
    default_message = 'This appointment can no longer be cancelled online. Please contact the salon.'


class SlotAlreadyTaken(BookingEngineError):
    """A live reservation or a booked appointment already occupies the time."""
    code = 'SLOT_ALREADY_TAKEN'
    default_message = 'This time was just taken by another customer. Please pick another time.'


class ReservationExpired(BookingEngineError):
    """The hold is gone (expired, swept or released); slot selection must restart."""
    code = 'RESERVATION_EXPIRED'
    default_message = 'Your reservation has expired. Please pick another time.'


class StaffUnavailable(BookingEngineError):
    """The staff member cannot take this booking (inactive, not bookable, lacks a service)."""
    code = 'STAFF_UNAVAILABLE'
    default_message = 'This staff member is not available for the selected services. Please pick another time.'
