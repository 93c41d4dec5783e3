"""Appointment repository - Database operations for appointments"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Appointment


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def list_all(db: Session) -> list[Appointment]:
        """Get every appointment, newest first"""
        return db.query(Appointment).order_by(Appointment.created_at.desc()).all()

    @staticmethod
    def list_created_between(db: Session, start: datetime, end: datetime) -> list[Appointment]:
        """Get appointments created in [start, end], newest first"""
        return (
            db.query(Appointment)
            .filter(Appointment.created_at >= start, Appointment.created_at <= end)
            .order_by(Appointment.created_at.desc())
            .all()
        )

    @staticmethod
    def get_by_id(db: Session, appointment_id: int) -> Optional[Appointment]:
        return db.query(Appointment).filter(Appointment.id == appointment_id).first()

    @staticmethod
    def create(db: Session, **appointment_data) -> Appointment:
        appointment = Appointment(**appointment_data)
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def update_status(db: Session, appointment: Appointment, status: str) -> Appointment:
        appointment.status = status
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def delete(db: Session, appointment: Appointment) -> None:
        db.delete(appointment)
        db.commit()
