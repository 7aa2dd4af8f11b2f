"""
Outgoing mail for customer notifications.

SMTP settings come from ``Settings`` (SMTP_*). When SMTP_HOST, SMTP_USERNAME
or SMTP_PASSWORD is missing, ``is_configured()`` is False and callers are
expected to skip sending.

Modes:
  * implicit TLS: SMTP_PORT=465, SMTP_USE_SSL=true
  * STARTTLS:     SMTP_PORT=587, SMTP_USE_SSL=false, SMTP_USE_TLS=true
"""

import logging
import smtplib
from collections.abc import Iterator
from contextlib import contextmanager
from email.message import EmailMessage

from app.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 30


def is_configured() -> bool:
    settings = get_settings()
    return bool(settings.SMTP_HOST and settings.SMTP_USERNAME and settings.SMTP_PASSWORD)


def build_message(
    settings: Settings,
    to_email: str,
    subject: str,
    text_body: str,
    html_body: str | None = None,
) -> EmailMessage:
    """Plain-text message, with an HTML alternative part when given."""
    sender = settings.SMTP_FROM_EMAIL or settings.SMTP_USERNAME
    msg = EmailMessage()
    msg["From"] = f"{settings.SMTP_FROM_NAME} <{sender}>"
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(text_body)
    if html_body:
        msg.add_alternative(html_body, subtype="html")
    return msg


@contextmanager
def smtp_connection(settings: Settings) -> Iterator[smtplib.SMTP]:
    """
    Logged-in SMTP connection, closed on exit.

    SMTP_USE_SSL wins over SMTP_USE_TLS when both are set.
    """
    if settings.SMTP_USE_SSL:
        server: smtplib.SMTP = smtplib.SMTP_SSL(
            settings.SMTP_HOST, settings.SMTP_PORT, timeout=SMTP_TIMEOUT_SECONDS
        )
    else:
        server = smtplib.SMTP(
            settings.SMTP_HOST, settings.SMTP_PORT, timeout=SMTP_TIMEOUT_SECONDS
        )
        if settings.SMTP_USE_TLS:
            server.starttls()
    try:
        server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)  # type: ignore[arg-type]
        yield server
    finally:
        try:
            server.quit()
        except smtplib.SMTPException:
            logger.debug("SMTP quit failed", exc_info=True)


def send_email(
    to_email: str,
    subject: str,
    text_body: str,
    html_body: str | None = None,
) -> None:
    """
    Send one message to one recipient.

    Raises:
        RuntimeError: SMTP settings are incomplete.
        smtplib.SMTPException: connection, login or delivery failed.
    """
    if not is_configured():
        raise RuntimeError(
            "SMTP is not configured. Set SMTP_HOST, SMTP_USERNAME and SMTP_PASSWORD."
        )

    settings = get_settings()
    msg = build_message(settings, to_email, subject, text_body, html_body)
    with smtp_connection(settings) as server:
        server.send_message(msg)
    logger.info("Sent %r to %s", subject, to_email)
