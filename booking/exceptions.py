"""
exceptions.py
-------------
Errors raised by the booking services.

Each error carries a user-facing message and the HTTP status the API layer
should answer with (see api_errors.py). Services never return error tuples;
they raise one of these and the surrounding transaction.atomic rolls back.
"""


class BookingError(Exception):
    status_code = 400
    default_message = "Booking request failed."

    def __init__(self, message=None, **extra):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)


class ValidationError(BookingError):
    """Malformed or missing input (dates, times, counts, required answers)."""
    default_message = "Invalid request."

    @property
    def missing_answers(self):
        return self.extra.get("missing_answers", [])


class NotFound(BookingError):
    """Window/resource/token missing, or not in the state the operation needs."""
    status_code = 404
    default_message = "Not found."


class PolicyError(BookingError):
    """Well-formed request that breaks a business rule."""
    default_message = "This request is not allowed."

    def __init__(self, message=None, status_code=None, **extra):
        super().__init__(message, **extra)
        if status_code is not None:
            self.status_code = status_code


class AuthorizationError(BookingError):
    status_code = 403
    default_message = "Forbidden access."


class TransientStoreError(BookingError):
    """The database failed underneath us; the transaction was rolled back."""
    status_code = 503
    default_message = "The service is temporarily unavailable. Please try again."


class FilePromotionError(BookingError):
    """A staged upload could not be moved to permanent storage."""
    status_code = 500
    default_message = "Error processing file uploads."
