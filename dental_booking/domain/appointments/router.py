"""Appointment router - public intake and admin moderation endpoints"""

import json
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ...auth import AdminPrincipal, require_admin
from ...database import get_db
from ...errors import ValidationFailed
from ...rate_limiter import enforce_submission_rate_limit, get_client_ip
from ...recaptcha import get_recaptcha_verifier
from .schemas import (
    AppointmentDetailResponse,
    AppointmentListResponse,
    AppointmentResponse,
    MessageResponse,
)
from .service import AppointmentService
from .validation import validate_submission

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/appointments", tags=["Appointments"])


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


def _list_response(appointments, message: str) -> AppointmentListResponse:
    return AppointmentListResponse(
        message=message,
        count=len(appointments),
        appointments=[AppointmentResponse.from_model(a) for a in appointments],
    )


# ============================================================================
# PUBLIC INTAKE
# ============================================================================


@router.post("", status_code=201, response_model=MessageResponse)
async def create_appointment(
    request: Request,
    _: None = Depends(enforce_submission_rate_limit),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Public booking form submission"""
    raw_body = await request.body()
    try:
        payload = json.loads(raw_body) if raw_body.strip() else {}
    except (ValueError, RecursionError) as e:
        raise ValidationFailed("Request body must be valid JSON") from e
    if not isinstance(payload, dict):
        raise ValidationFailed("Request body must be a JSON object")

    verifier = get_recaptcha_verifier(request)
    if verifier is not None:
        await verifier.verify(payload.get("recaptchaToken"), get_client_ip(request))

    data = validate_submission(payload, request.app.state.settings.require_language)
    service.create(data)

    return MessageResponse(message="Appointment request received! We will contact you soon.")


# ============================================================================
# ADMIN MODERATION
# ============================================================================


@router.get("", response_model=AppointmentListResponse)
async def list_appointments(
    _admin: AdminPrincipal = Depends(require_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Get every appointment, newest first"""
    return _list_response(service.list_all(), "Appointments retrieved")


@router.get("/custom/{start_date}/{end_date}", response_model=AppointmentListResponse)
async def list_appointments_in_range(
    start_date: str,
    end_date: str,
    _admin: AdminPrincipal = Depends(require_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Get appointments created between two calendar days (YYYY-MM-DD), inclusive"""
    appointments = service.list_by_custom_range(start_date, end_date)
    return _list_response(appointments, f"Appointments from {start_date} to {end_date}")


@router.get("/id/{appointment_id}", response_model=AppointmentDetailResponse)
async def get_appointment(
    appointment_id: int,
    _admin: AdminPrincipal = Depends(require_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.get(appointment_id)
    return AppointmentDetailResponse(
        message="Appointment retrieved", appointment=AppointmentResponse.from_model(appointment)
    )


@router.get("/{timeframe}", response_model=AppointmentListResponse)
async def list_appointments_by_timeframe(
    timeframe: str,
    _admin: AdminPrincipal = Depends(require_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Get appointments created today, or in the last week, month or year"""
    appointments = service.list_by_timeframe(timeframe)
    return _list_response(appointments, f"Appointments for {timeframe}")


@router.put("/{appointment_id}/confirm", response_model=AppointmentDetailResponse)
async def confirm_appointment(
    appointment_id: int,
    _admin: AdminPrincipal = Depends(require_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.confirm(appointment_id)
    return AppointmentDetailResponse(
        message="Appointment confirmed", appointment=AppointmentResponse.from_model(appointment)
    )


@router.delete("/{appointment_id}", response_model=MessageResponse)
async def delete_appointment(
    appointment_id: int,
    _admin: AdminPrincipal = Depends(require_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    service.delete(appointment_id)
    return MessageResponse(message="Appointment deleted")
