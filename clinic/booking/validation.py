"""
Booking payload rules.

The same predicate runs in the booking client, for immediate feedback, and in
the API, where it is authoritative. It has no side effects.
"""

import re
from datetime import date, datetime
from typing import Any, Mapping, Optional

from pydantic import BaseModel

from .errors import (
    ValidationFailed, MissingField, InvalidEmail, InvalidPhone,
    InvalidDoctor, InvalidDate, PastDate,
)
from .models import Doctor, REQUIRED_FIELDS

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^[0-9\s\-+()]{10,}$", re.ASCII)


class ValidationResult(BaseModel):
    ok: bool
    reason: Optional[str] = None
    message: Optional[str] = None
    field: Optional[str] = None

    @classmethod
    def failure(cls, error: ValidationFailed) -> "ValidationResult":
        return cls(ok=False, reason=error.code, message=error.message,
                   field=getattr(error, "field", None))


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def parse_booking_date(value: Any) -> date:
    """Parse an ISO calendar date, accepting a full ISO datetime as well."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return datetime.fromisoformat(text).date()
    except ValueError:
        raise InvalidDate()


def check_record_fields(payload: Mapping[str, Any]) -> date:
    """Shape rules every stored appointment obeys; returns the parsed date."""
    for field in REQUIRED_FIELDS:
        if _is_blank(payload.get(field)):
            raise MissingField(field)

    if not EMAIL_PATTERN.match(str(payload["email"]).strip()):
        raise InvalidEmail()

    if not PHONE_PATTERN.match(str(payload["phone"]).strip()):
        raise InvalidPhone()

    doctor = str(payload["doctor"]).strip()
    if doctor not in {d.value for d in Doctor}:
        raise InvalidDoctor(f"Unknown doctor: {doctor}")

    return parse_booking_date(payload["date"])


def check_booking(payload: Mapping[str, Any], today: Optional[date] = None) -> date:
    """Raise the first failing rule for ``payload``; return the parsed date.

    Past dates are compared at day granularity, so ``today`` itself passes.
    """
    booking_date = check_record_fields(payload)
    if booking_date < (today or date.today()):
        raise PastDate()

    return booking_date


def validate_booking(payload: Mapping[str, Any], today: Optional[date] = None) -> ValidationResult:
    try:
        check_booking(payload, today)
    except ValidationFailed as e:
        return ValidationResult.failure(e)
    return ValidationResult(ok=True)
