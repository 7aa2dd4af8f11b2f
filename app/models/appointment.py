import uuid
from datetime import date as date_type, datetime, time
from enum import Enum

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

from app.core.utils import utcnow


class AppointmentStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


TERMINAL_APPOINTMENT_STATUSES = frozenset(
    {AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED}
)

APPOINTMENT_STATUS_TIMESTAMPS: dict[AppointmentStatus, str] = {
    AppointmentStatus.CONFIRMED: "confirmed_at",
    AppointmentStatus.CANCELLED: "cancelled_at",
    AppointmentStatus.COMPLETED: "completed_at",
}


class SalonService(SQLModel, table=True):
    """
    Bookable salon service (e.g. "Hair Styling", 60 min).
    """

    __tablename__ = "salon_services"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(max_length=100)

    price: float = Field(gt=0, description="Price charged per appointment")

    duration: int = Field(gt=0, description="Duration in minutes")

    is_active: bool = Field(default=True, index=True)


class Stylist(SQLModel, table=True):
    __tablename__ = "stylists"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(max_length=100)

    is_active: bool = Field(default=True, index=True)


class Appointment(SQLModel, table=True):
    """
    A reserved slot. Times are salon wall-clock time (timezone-naive).

    Invariant: among non-cancelled appointments on the same date, those
    sharing a stylist never have overlapping [start_time, end_time)
    intervals. A booking made without a stylist is checked globally,
    against every non-cancelled appointment on that date.
    """

    __tablename__ = "appointments"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    appointment_number: str = Field(unique=True, index=True)

    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)

    service_id: uuid.UUID = Field(foreign_key="salon_services.id", index=True)

    stylist_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="stylists.id",
        index=True,
    )

    date: date_type = Field(index=True)
    start_time: time
    end_time: time

    status: AppointmentStatus = Field(
        default=AppointmentStatus.PENDING,
        index=True,
    )

    total_amount: float = Field(ge=0)

    note: str | None = None

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    confirmed_at: datetime | None = Field(default=None, sa_type=DateTime)
    cancelled_at: datetime | None = Field(default=None, sa_type=DateTime)
    completed_at: datetime | None = Field(default=None, sa_type=DateTime)


class AppointmentStatusHistory(SQLModel, table=True):
    """
    Append-only audit trail for appointment status changes.
    """

    __tablename__ = "appointment_status_history"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
    )

    appointment_id: uuid.UUID = Field(
        foreign_key="appointments.id",
        index=True,
    )

    status: AppointmentStatus
    note: str | None = None
    actor_id: uuid.UUID | None = None

    created_at: datetime = Field(default_factory=utcnow, index=True, sa_type=DateTime)
