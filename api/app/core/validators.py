"""
Reusable Pydantic field types for request bodies.

Each type trims its input and raises ``PydanticCustomError`` so failures
surface as per-field entries in the 400 "Validation failed" response.
"""
import re
from typing import Annotated, Callable

from pydantic import AfterValidator
from pydantic_core import PydanticCustomError


def _text(minimum: int, label: str, maximum: int | None = None) -> Callable[[str], str]:
    """Trimmed free text between ``minimum`` and ``maximum`` characters."""

    def _validate(value: str) -> str:
        value = value.strip()
        if len(value) < minimum:
            raise PydanticCustomError(
                "text_too_short",
                "{label} must be at least {minimum} characters",
                {"label": label, "minimum": minimum},
            )
        if maximum is not None and len(value) > maximum:
            raise PydanticCustomError(
                "text_too_long",
                "{label} must be at most {maximum} characters",
                {"label": label, "maximum": maximum},
            )
        return value

    return _validate


# =============================================================================
# Accounts
# =============================================================================

EMAIL_REGEX = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
MAX_EMAIL_LENGTH = 254
MIN_PASSWORD_LENGTH = 8
PHONE_REGEX = re.compile(r"^\+?[0-9 ()./-]{3,50}$")


def validate_email(value: str) -> str:
    """Lower-cased and trimmed; lookups and uniqueness rely on this form."""
    value = value.strip().lower()
    if len(value) > MAX_EMAIL_LENGTH or not EMAIL_REGEX.match(value):
        raise PydanticCustomError("invalid_email", "Invalid email address")
    return value


def validate_password(value: str) -> str:
    # Not trimmed: whitespace is part of the secret
    if len(value) < MIN_PASSWORD_LENGTH:
        raise PydanticCustomError(
            "password_too_short",
            "Password must be at least {minimum} characters",
            {"minimum": MIN_PASSWORD_LENGTH},
        )
    return value


def validate_phone(value: str) -> str:
    value = value.strip()
    if not PHONE_REGEX.match(value):
        raise PydanticCustomError("invalid_phone", "Invalid phone number")
    return value


Email = Annotated[str, AfterValidator(validate_email)]
Password = Annotated[str, AfterValidator(validate_password)]
PersonName = Annotated[str, AfterValidator(_text(2, "Name", maximum=100))]
Phone = Annotated[str, AfterValidator(validate_phone)]


# =============================================================================
# Investigations and reports
# =============================================================================

Title = Annotated[str, AfterValidator(_text(3, "Title", maximum=255))]
Description = Annotated[str, AfterValidator(_text(10, "Description"))]
ReportContent = Annotated[str, AfterValidator(_text(1, "Report content"))]
