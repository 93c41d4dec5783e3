from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import validates

from .database import Base
from .shared.validators import (
    DEFAULT_LANGUAGE,
    DEFAULT_SERVICE,
    EMAIL_MAX_LENGTH,
    MESSAGE_MAX_LENGTH,
    NAME_MAX_LENGTH,
    PHONE_MAX_LENGTH,
    SERVICE_MAX_LENGTH,
    VALID_LANGUAGES,
    is_valid_email,
)

APPOINTMENT_STATUSES = ("pending", "confirmed")


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(NAME_MAX_LENGTH), nullable=False)
    email = Column(String(EMAIL_MAX_LENGTH), nullable=False, index=True)
    phone = Column(String(PHONE_MAX_LENGTH), nullable=False)
    date = Column(DateTime, nullable=True)  # Requested appointment date
    service = Column(String(SERVICE_MAX_LENGTH), nullable=False, default=DEFAULT_SERVICE)
    message = Column(String(MESSAGE_MAX_LENGTH), nullable=False, default="")
    language = Column(String(20), nullable=False, default=DEFAULT_LANGUAGE)
    status = Column(String(20), nullable=False, default="pending")
    # Assigned by the store at insert; sort and range-filter key
    created_at = Column(DateTime, nullable=False, default=datetime.now, index=True)

    @validates("name", "phone")
    def validate_required_text(self, key, value):
        max_length = NAME_MAX_LENGTH if key == "name" else PHONE_MAX_LENGTH
        if not value or not value.strip():
            raise ValueError(f"{key.capitalize()} is required")
        if len(value) > max_length:
            raise ValueError(f"{key.capitalize()} exceeds maximum length of {max_length}")
        return value

    @validates("email")
    def validate_email(self, key, value):
        if not value:
            raise ValueError("Email is required")
        if len(value) > EMAIL_MAX_LENGTH:
            raise ValueError(f"Email exceeds maximum length of {EMAIL_MAX_LENGTH}")
        if value != value.lower() or not is_valid_email(value):
            raise ValueError("Email must be a lowercase address like name@example.com")
        return value

    @validates("message")
    def validate_message(self, key, value):
        if value and len(value) > MESSAGE_MAX_LENGTH:
            raise ValueError(f"Message exceeds maximum length of {MESSAGE_MAX_LENGTH}")
        return value

    @validates("language")
    def validate_language(self, key, value):
        if value not in VALID_LANGUAGES:
            raise ValueError(f"`{value}` is not a valid language")
        return value

    @validates("status")
    def validate_status(self, key, value):
        if value not in APPOINTMENT_STATUSES:
            raise ValueError(f"`{value}` is not a valid status")
        return value


UNIQUE_EMAIL_DATE_INDEX = "uq_appointments_email_date"


def ensure_unique_email_date(bind: Engine) -> None:
    """Create the opt-in unique index on (email, date) if it is missing"""
    with bind.begin() as conn:
        conn.execute(
            text(
                f"CREATE UNIQUE INDEX IF NOT EXISTS {UNIQUE_EMAIL_DATE_INDEX} "
                "ON appointments (email, date)"
            )
        )


class Admin(Base):
    __tablename__ = "admins"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), nullable=False)
    email = Column(String(EMAIL_MAX_LENGTH), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    @validates("email")
    def validate_email(self, key, value):
        if not is_valid_email(value):
            raise ValueError("Please provide a valid email")
        return value.lower()
