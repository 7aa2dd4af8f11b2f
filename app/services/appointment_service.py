import logging
import uuid
from datetime import date, datetime, time, timedelta

from sqlmodel import Session

from app.core.errors import (
    ConcurrentUpdateError,
    InvalidTransitionError,
    NotFoundError,
    SlotConflictError,
    ValidationError,
)
from app.core.locks import KeyedLock, schedule_locks
from app.core.utils import reference_number, utcnow
from app.models.appointment import (
    APPOINTMENT_STATUS_TIMESTAMPS,
    TERMINAL_APPOINTMENT_STATUSES,
    Appointment,
    AppointmentStatus,
    AppointmentStatusHistory,
)
from app.repositories.appointment_repo import AppointmentRepository
from app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

MAX_TRANSITION_ATTEMPTS = 3


class AppointmentService:
    """
    Appointment slot allocator.

    Responsibilities:
      - Book a (stylist, date, time range) slot without double-booking
      - Drive appointment status (PENDING -> CONFIRMED -> COMPLETED,
        or CANCELLED) with an append-only history
    """

    def __init__(
        self,
        repo: AppointmentRepository,
        notifier: NotificationService,
        locks: KeyedLock = schedule_locks,
    ):
        self.repo = repo
        self.notifier = notifier
        self.locks = locks

    # -------- Booking --------

    def book_slot(
        self,
        session: Session,
        user_id: uuid.UUID,
        service_id: uuid.UUID,
        stylist_id: uuid.UUID | None,
        on_date: date,
        start_time: time,
        note: str | None = None,
    ) -> Appointment:
        """
        Reserve [start_time, start_time + service.duration) on `on_date`.

        The schedule checked is the stylist's day, or, when no stylist is
        chosen, every booking of the day. Check and insert run under the
        day's lock and one transaction.

        Raises:
            NotFoundError: unknown/inactive service or stylist.
            ValidationError: the slot would run past midnight.
            SlotConflictError: the slot overlaps a non-cancelled booking.
        """
        service = self.repo.get_service(session, service_id)
        if service is None or not service.is_active:
            raise NotFoundError("Service", service_id)

        if stylist_id is not None:
            stylist = self.repo.get_stylist(session, stylist_id)
            if stylist is None or not stylist.is_active:
                raise NotFoundError("Stylist", stylist_id)

        start_time = start_time.replace(second=0, microsecond=0, tzinfo=None)
        start_dt = datetime.combine(on_date, start_time)
        end_dt = start_dt + timedelta(minutes=service.duration)
        if end_dt.date() != on_date:
            raise ValidationError("Appointment must end on the day it starts")
        end_time = end_dt.time()

        # Stylist-less bookings look at the whole day, so every booking of
        # that day shares one key
        with self.locks.hold(("salon", on_date)):
            try:
                # Row lock serializes same-stylist (or same-service) bookings
                # across worker processes on Postgres
                if stylist_id is not None:
                    self.repo.get_stylist(session, stylist_id, for_update=True)
                else:
                    self.repo.get_service(session, service_id, for_update=True)

                conflicts = self.repo.find_overlapping(
                    session,
                    on_date=on_date,
                    start=start_time,
                    end=end_time,
                    stylist_id=stylist_id,
                )
                if conflicts:
                    taken = conflicts[0]
                    logger.warning(
                        "Slot conflict on %s %s-%s with %s",
                        on_date,
                        start_time,
                        end_time,
                        taken.appointment_number,
                    )
                    raise SlotConflictError(
                        f"This time slot is already booked "
                        f"({taken.start_time:%H:%M}-{taken.end_time:%H:%M})"
                    )

                appointment = self.repo.create(
                    session,
                    Appointment(
                        appointment_number=reference_number("APT", 2),
                        user_id=user_id,
                        service_id=service.id,
                        stylist_id=stylist_id,
                        date=on_date,
                        start_time=start_time,
                        end_time=end_time,
                        status=AppointmentStatus.PENDING,
                        total_amount=service.price,
                        note=note,
                    ),
                )
                self.repo.add_history(
                    session,
                    AppointmentStatusHistory(
                        appointment_id=appointment.id,
                        status=AppointmentStatus.PENDING,
                        note="Appointment booked",
                        actor_id=user_id,
                    ),
                )
                session.commit()
            except Exception:
                session.rollback()
                raise

        session.refresh(appointment)
        logger.info(
            "Appointment %s booked: %s %s-%s",
            appointment.appointment_number,
            on_date,
            start_time,
            end_time,
        )
        self.notifier.appointment_status_changed(session, appointment)
        return appointment

    # -------- Lifecycle --------

    def transition(
        self,
        session: Session,
        appointment_id: uuid.UUID,
        new_status: AppointmentStatus,
        actor_id: uuid.UUID | None,
        note: str | None = None,
    ) -> Appointment:
        """
        Same contract as order transitions, without stock/point effects:
        no-op on the current status, InvalidTransitionError out of
        CANCELLED/COMPLETED, CAS + history otherwise.
        """
        for attempt in range(1, MAX_TRANSITION_ATTEMPTS + 1):
            try:
                appointment = self.repo.get_by_id(session, appointment_id)
                if appointment is None:
                    raise NotFoundError("Appointment", appointment_id)

                current = appointment.status
                if current == new_status:
                    session.rollback()
                    return appointment

                if current in TERMINAL_APPOINTMENT_STATUSES:
                    raise InvalidTransitionError(current.value, new_status.value)

                values: dict[str, object] = {"status": new_status}
                stamp = APPOINTMENT_STATUS_TIMESTAMPS.get(new_status)
                if stamp:
                    values[stamp] = utcnow()

                if not self.repo.compare_and_set_status(
                    session, appointment.id, current, values
                ):
                    session.rollback()
                    logger.warning(
                        "Appointment %s changed concurrently (attempt %s/%s)",
                        appointment_id,
                        attempt,
                        MAX_TRANSITION_ATTEMPTS,
                    )
                    continue

                self.repo.add_history(
                    session,
                    AppointmentStatusHistory(
                        appointment_id=appointment.id,
                        status=new_status,
                        note=note or f"Status changed from {current.value} to {new_status.value}",
                        actor_id=actor_id,
                    ),
                )
                session.commit()
            except Exception:
                session.rollback()
                raise

            session.refresh(appointment)
            logger.info(
                "Appointment %s: %s -> %s by %s",
                appointment.appointment_number,
                current.value,
                new_status.value,
                actor_id,
            )
            self.notifier.appointment_status_changed(session, appointment)
            return appointment

        raise ConcurrentUpdateError(
            f"Appointment {appointment_id} is being updated by another request; please retry"
        )

    def cancel(
        self,
        session: Session,
        user_id: uuid.UUID,
        appointment_id: uuid.UUID,
        reason: str | None = None,
    ) -> Appointment:
        """
        Customer cancels their own appointment.

        Someone else's appointment is reported as not found.
        """
        appointment = self.repo.get_by_id(session, appointment_id)
        if appointment is None or appointment.user_id != user_id:
            raise NotFoundError("Appointment", appointment_id)
        return self.transition(
            session,
            appointment_id,
            AppointmentStatus.CANCELLED,
            actor_id=user_id,
            note=reason or "Cancelled by customer",
        )

    # -------- Reads --------

    def list_user_appointments(
        self,
        session: Session,
        user_id: uuid.UUID,
        upcoming: bool = False,
        today: date | None = None,
    ) -> list[Appointment]:
        """
        All of a user's appointments (newest first), or only upcoming
        PENDING/CONFIRMED ones (soonest first).
        """
        if not upcoming:
            return self.repo.list_for_user(session, user_id)
        return self.repo.list_for_user(
            session,
            user_id,
            from_date=today or date.today(),
            statuses=[AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED],
        )
