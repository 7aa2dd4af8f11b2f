import uuid
from datetime import date as date_type, datetime, time

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel

from app.models.appointment import AppointmentStatus


class AppointmentCreate(SQLModel):
    """
    Booking payload. `start_time` is salon wall-clock time, e.g. "10:30".
    """

    model_config = ConfigDict(extra="forbid")

    service_id: uuid.UUID
    stylist_id: uuid.UUID | None = None
    date: date_type
    start_time: time
    note: str | None = None

    @field_validator("date")
    @classmethod
    def not_in_past(cls, v: date_type) -> date_type:
        if v < date_type.today():
            raise ValueError("Appointment date cannot be in the past")
        return v

    @field_validator("note")
    @classmethod
    def normalize_note(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class AppointmentRead(SQLModel):
    id: uuid.UUID
    appointment_number: str
    user_id: uuid.UUID
    service_id: uuid.UUID
    stylist_id: uuid.UUID | None
    date: date_type
    start_time: time
    end_time: time
    status: AppointmentStatus
    total_amount: float
    note: str | None
    created_at: datetime
    confirmed_at: datetime | None
    cancelled_at: datetime | None
    completed_at: datetime | None


class AppointmentStatusUpdate(SQLModel):
    """
    Staff payload to change appointment status.
    """

    model_config = ConfigDict(extra="forbid")

    status: AppointmentStatus
    note: str | None = None


class AppointmentCancel(SQLModel):
    model_config = ConfigDict(extra="forbid")

    reason: str | None = None
