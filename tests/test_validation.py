from datetime import datetime

import pytest

from dental_booking.domain.appointments.validation import validate_submission
from dental_booking.errors import (
    InvalidEmailError,
    InvalidLanguageError,
    MissingFieldsError,
    ValidationFailed,
)


def _payload(**overrides):
    payload = {
        "name": "  Tran Thi B  ",
        "email": "  Tran.B@Example.COM ",
        "phone": " 0901 234 567 ",
        "language": "ENGLISH",
    }
    payload.update(overrides)
    return payload


def test_normalizes_fields():
    record = validate_submission(_payload(message="  hello  "))

    assert record.name == "Tran Thi B"
    assert record.email == "tran.b@example.com"
    assert record.phone == "0901 234 567"
    assert record.language == "english"
    assert record.message == "hello"
    assert record.service == "General Checkup"
    assert record.date is None


def test_truncates_to_maximum_lengths():
    record = validate_submission(
        _payload(name="n" * 150, phone="1" * 30, message="m" * 600, service="s" * 200)
    )

    assert len(record.name) == 100
    assert len(record.phone) == 20
    assert len(record.message) == 500
    assert len(record.service) == 100


@pytest.mark.parametrize(
    "overrides, missing",
    [
        ({"name": None}, ["name"]),
        ({"phone": ""}, ["phone"]),
        ({"email": "   "}, ["email"]),
        ({"language": None}, ["language"]),
        ({"name": "", "phone": None, "language": ""}, ["name", "phone", "language"]),
    ],
)
def test_reports_exactly_the_missing_fields(overrides, missing):
    with pytest.raises(MissingFieldsError) as exc_info:
        validate_submission(_payload(**overrides))

    assert exc_info.value.fields == missing
    assert exc_info.value.message == f"Missing required fields: {', '.join(missing)}"


def test_absent_keys_count_as_missing():
    with pytest.raises(MissingFieldsError) as exc_info:
        validate_submission({})

    assert exc_info.value.fields == ["name", "email", "phone", "language"]


@pytest.mark.parametrize(
    "email", ["no-at-sign.com", "user@nodot", "user name@example.com", "@example.com", "user@.", "a@b."]
)
def test_rejects_malformed_email(email):
    with pytest.raises(InvalidEmailError):
        validate_submission(_payload(email=email))


def test_rejects_unknown_language_and_names_allowed_values():
    with pytest.raises(InvalidLanguageError) as exc_info:
        validate_submission(_payload(language="german"))

    assert exc_info.value.extra["allowed"] == [
        "vietnamese",
        "english",
        "simplified",
        "traditional",
        "french",
        "korean",
    ]
    assert "vietnamese" in exc_info.value.message


def test_optional_language_defaults_to_vietnamese():
    record = validate_submission(_payload(language=None), require_language=False)

    assert record.language == "vietnamese"


def test_optional_language_is_still_checked_when_given():
    with pytest.raises(InvalidLanguageError):
        validate_submission(_payload(language="klingon"), require_language=False)


def test_parses_calendar_date_and_datetime():
    assert validate_submission(_payload(date="2030-05-01")).date == datetime(2030, 5, 1)
    assert validate_submission(_payload(date="2030-05-01T09:30:00Z")).date == datetime(
        2030, 5, 1, 9, 30
    )


def test_rejects_unparsable_date():
    with pytest.raises(ValidationFailed) as exc_info:
        validate_submission(_payload(date="next tuesday"))

    assert exc_info.value.code == "VALIDATION_ERROR"


def test_numeric_phone_is_coerced_and_objects_are_rejected():
    assert validate_submission(_payload(phone=901234567)).phone == "901234567"

    with pytest.raises(ValidationFailed):
        validate_submission(_payload(name={"first": "A"}))


def test_ignores_store_managed_keys():
    record = validate_submission(_payload(createdAt="2000-01-01", status="confirmed", id=7))

    assert "createdAt" not in record.model_dump()
    assert "status" not in record.model_dump()
