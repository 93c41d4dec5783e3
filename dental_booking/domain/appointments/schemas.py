"""Appointment domain schemas - Pydantic models for records and responses"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ...models import Appointment
from ...shared.validators import DEFAULT_LANGUAGE, DEFAULT_SERVICE


class AppointmentCreate(BaseModel):
    """Normalized submission, ready for persistence"""

    name: str
    email: str
    phone: str
    date: Optional[datetime] = None
    service: str = DEFAULT_SERVICE
    message: str = ""
    language: str = DEFAULT_LANGUAGE


class AppointmentResponse(BaseModel):
    id: int
    name: str
    email: str
    phone: str
    date: Optional[datetime]
    service: str
    message: str
    language: str
    status: str
    createdAt: datetime

    @classmethod
    def from_model(cls, appointment: Appointment) -> "AppointmentResponse":
        return cls(
            id=appointment.id,
            name=appointment.name,
            email=appointment.email,
            phone=appointment.phone,
            date=appointment.date,
            service=appointment.service,
            message=appointment.message,
            language=appointment.language,
            status=appointment.status,
            createdAt=appointment.created_at,
        )


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class AppointmentListResponse(MessageResponse):
    count: int
    appointments: list[AppointmentResponse]


class AppointmentDetailResponse(MessageResponse):
    appointment: AppointmentResponse
