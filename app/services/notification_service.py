import logging

from sqlmodel import Session

from app.core import email_client
from app.models.appointment import Appointment, AppointmentStatus
from app.models.order import Order, OrderStatus
from app.models.user import User

logger = logging.getLogger(__name__)

ORDER_MESSAGES: dict[OrderStatus, tuple[str, str]] = {
    OrderStatus.PENDING: (
        "Order Placed Successfully",
        "Your order {number} has been placed and is awaiting confirmation.",
    ),
    OrderStatus.CONFIRMED: (
        "Order Confirmed",
        "Your order {number} has been confirmed and is being prepared.",
    ),
    OrderStatus.PROCESSING: (
        "Order Being Processed",
        "Your order {number} is now being processed.",
    ),
    OrderStatus.SHIPPED: (
        "Order Shipped",
        "Your order {number} has been shipped! Track your delivery in your account.",
    ),
    OrderStatus.OUT_FOR_DELIVERY: (
        "Out for Delivery",
        "Your order {number} is out for delivery and will arrive soon!",
    ),
    OrderStatus.DELIVERED: (
        "Order Delivered",
        "Your order {number} has been delivered. Enjoy your purchase!",
    ),
    OrderStatus.CANCELLED: (
        "Order Cancelled",
        "Your order {number} has been cancelled. Contact support for details.",
    ),
}

APPOINTMENT_MESSAGES: dict[AppointmentStatus, tuple[str, str]] = {
    AppointmentStatus.PENDING: (
        "Appointment Requested",
        "Your appointment {number} on {date} at {time} is awaiting confirmation.",
    ),
    AppointmentStatus.CONFIRMED: (
        "Appointment Confirmed",
        "Your appointment {number} on {date} at {time} has been confirmed.",
    ),
    AppointmentStatus.CANCELLED: (
        "Appointment Cancelled",
        "Your appointment {number} on {date} has been cancelled.",
    ),
    AppointmentStatus.COMPLETED: (
        "Appointment Completed",
        "Thank you for visiting! Your appointment {number} is complete.",
    ),
}


class NotificationService:
    """
    Fire-and-forget customer notifications.

    Called after a transaction has committed. Never raises: a failed
    notification is logged and the primary operation still succeeds.
    """

    def order_status_changed(self, session: Session, order: Order) -> None:
        title, template = ORDER_MESSAGES[order.status]
        self._dispatch(session, order.user_id, title, template.format(number=order.order_number))

    def appointment_status_changed(self, session: Session, appointment: Appointment) -> None:
        title, template = APPOINTMENT_MESSAGES[appointment.status]
        message = template.format(
            number=appointment.appointment_number,
            date=appointment.date.isoformat(),
            time=appointment.start_time.strftime("%H:%M"),
        )
        self._dispatch(session, appointment.user_id, title, message)

    def _dispatch(self, session: Session, user_id, title: str, message: str) -> None:
        try:
            user = session.get(User, user_id)
            if user is None:
                logger.info("Skipping notification %r: user %s not found", title, user_id)
                return
            if not email_client.is_configured():
                logger.info("SMTP not configured; notification for %s: %s", user.email, title)
                return
            email_client.send_email(
                to_email=user.email,
                subject=f"[Chocky's] {title}",
                text_body=message,
            )
        except Exception:
            logger.exception("Failed to send notification %r to user %s", title, user_id)
