"""Outbound account email (activation and password reset links)."""

import asyncio
import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from enum import Enum

from authgate.core.config import Settings, settings
from authgate.core.logging import redact_tokens
from authgate.services.errors import NotifierError

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 30


class NotificationOperation(str, Enum):
    ACTIVATION = "activation"
    PASSWORD_RESET = "password_reset"


_SUBJECTS = {
    NotificationOperation.ACTIVATION: "Activate your account",
    NotificationOperation.PASSWORD_RESET: "Reset your password",
}

_BODIES = {
    NotificationOperation.ACTIVATION: (
        "Welcome!\n\nFollow this link to activate your account:\n\n{link}\n\n"
        "If you did not sign up, you can ignore this message."
    ),
    NotificationOperation.PASSWORD_RESET: (
        "A password reset was requested for your account.\n\n"
        "Follow this link to choose a new password:\n\n{link}\n\n"
        "The link can be used once. If you did not ask for this, ignore this message."
    ),
}


def _redact_email(email: str) -> str:
    if "@" not in email:
        return "redacted"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


class EmailNotifier:
    """Send account links by SMTP.

    When no SMTP host is configured the message is logged instead (dev mode).
    Delivery failures raise NotifierError; callers log it and carry on.
    """

    def __init__(
        self,
        *,
        smtp_host: str | None = None,
        smtp_port: int = 587,
        smtp_user: str | None = None,
        smtp_password: str | None = None,
        smtp_use_tls: bool = True,
        from_email: str | None = None,
        from_name: str = "AuthGate",
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.smtp_use_tls = smtp_use_tls
        self.from_email = from_email or smtp_user
        self.from_name = from_name

    @classmethod
    def from_settings(cls, config: Settings) -> "EmailNotifier":
        return cls(
            smtp_host=config.smtp_host,
            smtp_port=config.smtp_port,
            smtp_user=config.smtp_user,
            smtp_password=config.smtp_password,
            smtp_use_tls=config.smtp_use_tls,
            from_email=config.smtp_from_email,
            from_name=config.smtp_from_name,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host and self.from_email)

    async def send(self, operation: NotificationOperation | str, recipient: str, link: str) -> None:
        """Deliver ``link`` to ``recipient`` for the given operation."""
        try:
            operation = NotificationOperation(operation)
        except ValueError as e:
            raise NotifierError(f"Unknown notification operation: {operation}") from e

        subject = _SUBJECTS[operation]
        body = _BODIES[operation].format(link=link)

        if not self.is_configured:
            logger.info(
                f"Email (dev mode) {operation.value} to {_redact_email(recipient)}: "
                f"{redact_tokens(link)}"
            )
            return

        # smtplib is blocking
        await asyncio.to_thread(self._deliver, recipient, subject, body)
        logger.info(f"Sent {operation.value} email to {_redact_email(recipient)}")

    def _deliver(self, recipient: str, subject: str, body: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = recipient
        msg.attach(MIMEText(body, "plain"))

        context = ssl.create_default_context()
        try:
            if self.smtp_use_tls:
                with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=SMTP_TIMEOUT_SECONDS) as server:
                    server.starttls(context=context)
                    if self.smtp_user and self.smtp_password:
                        server.login(self.smtp_user, self.smtp_password)
                    server.sendmail(self.from_email, recipient, msg.as_string())
            else:
                with smtplib.SMTP_SSL(
                    self.smtp_host, self.smtp_port, context=context, timeout=SMTP_TIMEOUT_SECONDS
                ) as server:
                    if self.smtp_user and self.smtp_password:
                        server.login(self.smtp_user, self.smtp_password)
                    server.sendmail(self.from_email, recipient, msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            raise NotifierError(f"SMTP delivery to {_redact_email(recipient)} failed: {e}") from e


def get_notifier() -> EmailNotifier:
    """Notifier built from the current settings."""
    return EmailNotifier.from_settings(settings)
