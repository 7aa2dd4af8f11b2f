import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import require_staff, require_user
from app.database import get_session
from app.models.user import User
from app.repositories.appointment_repo import AppointmentRepository
from app.schemas.appointment import (
    AppointmentCancel,
    AppointmentCreate,
    AppointmentRead,
    AppointmentStatusUpdate,
)
from app.services.appointment_service import AppointmentService
from app.services.notification_service import NotificationService

router = APIRouter(prefix="/appointments", tags=["Appointments"])

service = AppointmentService(AppointmentRepository(), NotificationService())


@router.post("", response_model=AppointmentRead, status_code=201)
def book_appointment(
    payload: AppointmentCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Book a salon slot. 409 if the stylist (or service) is already booked
    for an overlapping time.
    """
    return service.book_slot(
        session,
        user_id=current_user.id,
        service_id=payload.service_id,
        stylist_id=payload.stylist_id,
        on_date=payload.date,
        start_time=payload.start_time,
        note=payload.note,
    )


@router.get("/me", response_model=list[AppointmentRead])
def list_my_appointments(
    upcoming: bool = False,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    The current user's appointments; `upcoming=true` keeps only
    pending/confirmed ones from today on.
    """
    return service.list_user_appointments(session, current_user.id, upcoming=upcoming)


@router.post("/{appointment_id}/cancel", response_model=AppointmentRead)
def cancel_my_appointment(
    appointment_id: uuid.UUID,
    payload: AppointmentCancel | None = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    return service.cancel(
        session,
        current_user.id,
        appointment_id,
        reason=payload.reason if payload else None,
    )


@router.patch("/{appointment_id}/status", response_model=AppointmentRead)
def update_appointment_status(
    appointment_id: uuid.UUID,
    payload: AppointmentStatusUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_staff),
):
    """
    Confirm, complete or cancel an appointment (staff only).
    """
    return service.transition(
        session,
        appointment_id,
        payload.status,
        actor_id=current_user.id,
        note=payload.note,
    )
