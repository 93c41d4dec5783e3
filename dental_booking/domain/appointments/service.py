"""Appointment service - Business logic for intake and moderation"""

import logging
from datetime import datetime, time, timedelta
from typing import Callable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...errors import (
    DuplicateEntryError,
    InvalidDateError,
    InvalidTimeframeError,
    NotFoundError,
    ValidationFailed,
)
from ...models import Appointment
from ...shared.validators import parse_calendar_date
from .repository import AppointmentRepository
from .schemas import AppointmentCreate

logger = logging.getLogger(__name__)

TIMEFRAMES = ("today", "week", "month", "year")
TIMEFRAME_DAYS = {"week": 7, "month": 30, "year": 365}


class AppointmentService:
    """Service layer for appointment business logic"""

    def __init__(self, db: Session, now: Callable[[], datetime] = datetime.now):
        self.db = db
        self.repo = AppointmentRepository()
        self.now = now

    def create(self, data: AppointmentCreate) -> Appointment:
        """Persist a validated submission; created_at is assigned here, at insert"""
        try:
            appointment = self.repo.create(self.db, **data.model_dump())
        except ValueError as e:
            self.db.rollback()
            raise ValidationFailed(str(e)) from e
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Duplicate appointment rejected for {data.email}")
            raise DuplicateEntryError("An appointment with these details already exists") from e

        logger.info(f"📥 Appointment {appointment.id} created ({appointment.language})")
        return appointment

    def list_all(self) -> list[Appointment]:
        return self.repo.list_all(self.db)

    def timeframe_bounds(self, timeframe: str) -> tuple[datetime, datetime]:
        """Start and end of a named window ending now"""
        end = self.now()
        if timeframe == "today":
            return datetime.combine(end.date(), time.min), end
        if timeframe in TIMEFRAME_DAYS:
            return end - timedelta(days=TIMEFRAME_DAYS[timeframe]), end
        raise InvalidTimeframeError(TIMEFRAMES)

    def list_by_timeframe(self, timeframe: str) -> list[Appointment]:
        start, end = self.timeframe_bounds(timeframe)
        return self.repo.list_created_between(self.db, start, end)

    def list_by_custom_range(self, start_date: str, end_date: str) -> list[Appointment]:
        """
        Appointments created between two calendar days, both inclusive.

        The end day is extended to its last instant.
        """
        try:
            start_day = parse_calendar_date(start_date)
            end_day = parse_calendar_date(end_date)
        except ValueError as e:
            raise InvalidDateError() from e

        if start_day > end_day:
            raise InvalidDateError("Start date must be on or before end date")

        start = datetime.combine(start_day, time.min)
        end = datetime.combine(end_day, time.max)
        return self.repo.list_created_between(self.db, start, end)

    def get(self, appointment_id: int) -> Appointment:
        appointment = self.repo.get_by_id(self.db, appointment_id)
        if not appointment:
            raise NotFoundError("Appointment not found")
        return appointment

    def confirm(self, appointment_id: int) -> Appointment:
        """Mark an appointment confirmed; confirming twice is a no-op"""
        appointment = self.get(appointment_id)
        if appointment.status == "confirmed":
            return appointment

        appointment = self.repo.update_status(self.db, appointment, "confirmed")
        logger.info(f"✅ Appointment {appointment_id} confirmed")
        return appointment

    def delete(self, appointment_id: int) -> None:
        appointment = self.get(appointment_id)
        self.repo.delete(self.db, appointment)
        logger.info(f"🗑️ Appointment {appointment_id} deleted")
