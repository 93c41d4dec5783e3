"""Validation and normalization of public appointment submissions (no I/O)"""

from typing import Any, Optional

from ...errors import (
    InvalidEmailError,
    InvalidLanguageError,
    MissingFieldsError,
    ValidationFailed,
)
from ...shared.validators import (
    DEFAULT_LANGUAGE,
    DEFAULT_SERVICE,
    EMAIL_MAX_LENGTH,
    MESSAGE_MAX_LENGTH,
    NAME_MAX_LENGTH,
    PHONE_MAX_LENGTH,
    SERVICE_MAX_LENGTH,
    VALID_LANGUAGES,
    clean_text,
    parse_appointment_date,
    validate_email,
    validate_language,
)
from .schemas import AppointmentCreate

BASE_REQUIRED_FIELDS = ("name", "email", "phone")


def required_fields(require_language: bool) -> tuple[str, ...]:
    if require_language:
        return BASE_REQUIRED_FIELDS + ("language",)
    return BASE_REQUIRED_FIELDS


def _text(payload: dict[str, Any], field: str) -> Optional[str]:
    value = payload.get(field)
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise ValidationFailed(f"{field.capitalize()} must be a string", extra={"fields": [field]})


def validate_submission(payload: dict[str, Any], require_language: bool = True) -> AppointmentCreate:
    """
    Check a sanitized submission and build the record to persist.

    A required field is missing when it is absent, null or blank. Fields are
    trimmed and cut to their maximum length, email and language are
    lower-cased, and service falls back to the clinic default. Keys that are
    not part of the record (createdAt, status, ...) are ignored.

    Raises:
        MissingFieldsError, InvalidEmailError, InvalidLanguageError,
        ValidationFailed
    """
    fields = {
        field: _text(payload, field)
        for field in ("name", "email", "phone", "service", "message", "language")
    }

    missing = [
        field
        for field in required_fields(require_language)
        if not fields[field] or not fields[field].strip()
    ]
    if missing:
        raise MissingFieldsError(missing)

    try:
        email = validate_email(fields["email"])
    except ValueError as e:
        raise InvalidEmailError() from e

    language = fields["language"]
    if language is None or not language.strip():
        language = DEFAULT_LANGUAGE
    try:
        language = validate_language(language)
    except ValueError as e:
        raise InvalidLanguageError(VALID_LANGUAGES) from e

    requested_date = None
    raw_date = payload.get("date")
    if raw_date not in (None, ""):
        if not isinstance(raw_date, str):
            raise ValidationFailed("Date must be an ISO-8601 string", extra={"fields": ["date"]})
        try:
            requested_date = parse_appointment_date(raw_date)
        except ValueError as e:
            raise ValidationFailed(
                "Invalid appointment date. Use YYYY-MM-DD", extra={"fields": ["date"]}
            ) from e

    return AppointmentCreate(
        name=clean_text(fields["name"], NAME_MAX_LENGTH),
        email=email[:EMAIL_MAX_LENGTH],
        phone=clean_text(fields["phone"], PHONE_MAX_LENGTH),
        date=requested_date,
        service=clean_text(fields["service"], SERVICE_MAX_LENGTH) or DEFAULT_SERVICE,
        message=clean_text(fields["message"], MESSAGE_MAX_LENGTH),
        language=language,
    )
