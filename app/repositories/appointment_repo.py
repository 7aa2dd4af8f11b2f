import uuid
from datetime import date, time
from typing import Any

from sqlalchemy import update
from sqlmodel import Session, select

from app.models.appointment import (
    Appointment,
    AppointmentStatus,
    AppointmentStatusHistory,
    SalonService,
    Stylist,
)


class AppointmentRepository:
    """
    Data access layer for appointments and the salon catalog
    (services, stylists).

    NOTE:
      - No commits here; booking is check-then-insert inside one
        transaction owned by AppointmentService.
    """

    # ---- Catalog ----

    def get_service(
        self,
        session: Session,
        service_id: uuid.UUID,
        for_update: bool = False,
    ) -> SalonService | None:
        stmt = select(SalonService).where(SalonService.id == service_id)
        if for_update:
            stmt = stmt.with_for_update()
        return session.exec(stmt).first()

    def get_stylist(
        self,
        session: Session,
        stylist_id: uuid.UUID,
        for_update: bool = False,
    ) -> Stylist | None:
        stmt = select(Stylist).where(Stylist.id == stylist_id)
        if for_update:
            stmt = stmt.with_for_update()
        return session.exec(stmt).first()

    # ---- Appointments ----

    def get_by_id(
        self,
        session: Session,
        appointment_id: uuid.UUID,
    ) -> Appointment | None:
        stmt = (
            select(Appointment)
            .where(Appointment.id == appointment_id)
            .execution_options(populate_existing=True)
        )
        return session.exec(stmt).first()

    def list_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        from_date: date | None = None,
        statuses: list[AppointmentStatus] | None = None,
    ) -> list[Appointment]:
        stmt = select(Appointment).where(Appointment.user_id == user_id)
        if from_date is not None:
            stmt = stmt.where(Appointment.date >= from_date)
            stmt = stmt.order_by(Appointment.date, Appointment.start_time)
        else:
            stmt = stmt.order_by(Appointment.date.desc(), Appointment.start_time.desc())
        if statuses:
            stmt = stmt.where(Appointment.status.in_(statuses))
        return list(session.exec(stmt).all())

    def find_overlapping(
        self,
        session: Session,
        *,
        on_date: date,
        start: time,
        end: time,
        stylist_id: uuid.UUID | None,
    ) -> list[Appointment]:
        """
        Non-cancelled appointments whose [start_time, end_time) intersects
        [start, end) on `on_date`.

        With a stylist only that stylist's day is searched; without one,
        every appointment of the day counts.
        """
        stmt = select(Appointment).where(
            Appointment.date == on_date,
            Appointment.status != AppointmentStatus.CANCELLED,
            Appointment.start_time < end,
            Appointment.end_time > start,
        )
        if stylist_id is not None:
            stmt = stmt.where(Appointment.stylist_id == stylist_id)
        return list(session.exec(stmt).all())

    def create(self, session: Session, appointment: Appointment) -> Appointment:
        session.add(appointment)
        session.flush()
        session.refresh(appointment)
        return appointment

    def compare_and_set_status(
        self,
        session: Session,
        appointment_id: uuid.UUID,
        expected: AppointmentStatus,
        values: dict[str, Any],
    ) -> bool:
        stmt = (
            update(Appointment)
            .where(Appointment.id == appointment_id, Appointment.status == expected)
            .values(**values)
        )
        result = session.exec(stmt)
        return result.rowcount == 1

    # ---- Status history (append-only) ----

    def add_history(
        self,
        session: Session,
        entry: AppointmentStatusHistory,
    ) -> AppointmentStatusHistory:
        session.add(entry)
        session.flush()
        return entry

    def list_history(
        self,
        session: Session,
        appointment_id: uuid.UUID,
    ) -> list[AppointmentStatusHistory]:
        stmt = (
            select(AppointmentStatusHistory)
            .where(AppointmentStatusHistory.appointment_id == appointment_id)
            .order_by(AppointmentStatusHistory.created_at)
        )
        return list(session.exec(stmt).all())
