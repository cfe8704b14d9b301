from typing import Optional


class BookingError(Exception):
    """Base class for every error the booking workflow raises."""

    code = "BookingError"
    status_code = 500
    default_message = "Booking error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(BookingError):
    code = "ValidationFailed"
    status_code = 400
    default_message = "Invalid booking request"


class MissingField(ValidationFailed):
    code = "MissingField"
    default_message = "All fields are required"

    def __init__(self, field: Optional[str] = None, message: Optional[str] = None):
        self.field = field
        super().__init__(message or (f"All fields are required ({field} is missing)" if field else None))


class InvalidEmail(ValidationFailed):
    code = "InvalidEmail"
    default_message = "Invalid email address"


class InvalidPhone(ValidationFailed):
    code = "InvalidPhone"
    default_message = "Invalid phone number"


class InvalidDoctor(ValidationFailed):
    code = "InvalidDoctor"
    default_message = "Unknown doctor"


class InvalidDate(ValidationFailed):
    code = "InvalidDate"
    default_message = "Invalid date format. Use YYYY-MM-DD."


class PastDate(ValidationFailed):
    code = "PastDate"
    default_message = "Please select a future date"


class InvalidStatus(BookingError):
    code = "InvalidStatus"
    status_code = 400
    default_message = "Invalid status"


class NotFound(BookingError):
    code = "NotFound"
    status_code = 404
    default_message = "Appointment not found"


class StoreUnavailable(BookingError):
    code = "StoreUnavailable"
    status_code = 503
    default_message = "Appointment store is unavailable"


class MailDispatchFailure(BookingError):
    """Raised inside the notification dispatcher; never reaches API callers."""

    code = "MailDispatchFailure"
    default_message = "Failed to send email"
