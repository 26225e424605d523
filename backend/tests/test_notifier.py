"""Tests for outbound account email."""

import logging
import smtplib
from unittest.mock import MagicMock, patch

import pytest

from authgate.services.errors import NotifierError
from authgate.services.notifier import EmailNotifier, NotificationOperation

LINK = "http://localhost:8000/auth/enable-user/eyJhbGciOiJIUzI1NiJ9.eyJzdWIiOiJhIn0.c2ln"


@pytest.fixture
def smtp_notifier() -> EmailNotifier:
    return EmailNotifier(
        smtp_host="smtp.example.com",
        smtp_user="mailer@example.com",
        smtp_password="pw",
    )


class TestDevMode:
    def test_not_configured_without_host(self):
        assert EmailNotifier().is_configured is False

    @pytest.mark.asyncio
    async def test_logs_instead_of_sending(self, caplog):
        with caplog.at_level(logging.INFO, logger="authgate.services.notifier"):
            await EmailNotifier().send(NotificationOperation.ACTIVATION, "alice@x.com", LINK)

        assert "activation" in caplog.text
        assert "al***@x.com" in caplog.text
        # The token in the link is not written to the log
        assert "eyJhbGciOiJIUzI1NiJ9" not in caplog.text

    @pytest.mark.asyncio
    async def test_unknown_operation(self):
        with pytest.raises(NotifierError):
            await EmailNotifier().send("welcome_back", "alice@x.com", LINK)


class TestSmtpDelivery:
    @pytest.mark.asyncio
    async def test_sends_over_starttls(self, smtp_notifier):
        with patch("authgate.services.notifier.smtplib.SMTP") as mock_smtp:
            server = mock_smtp.return_value.__enter__.return_value

            await smtp_notifier.send("password_reset", "alice@x.com", LINK)

        server.starttls.assert_called_once()
        server.login.assert_called_once_with("mailer@example.com", "pw")
        sender, recipient, message = server.sendmail.call_args.args
        assert sender == "mailer@example.com"
        assert recipient == "alice@x.com"
        assert "Reset your password" in message

    @pytest.mark.asyncio
    async def test_smtp_failure_raises_notifier_error(self, smtp_notifier):
        with patch("authgate.services.notifier.smtplib.SMTP") as mock_smtp:
            server = mock_smtp.return_value.__enter__.return_value
            server.sendmail.side_effect = smtplib.SMTPRecipientsRefused({})

            with pytest.raises(NotifierError):
                await smtp_notifier.send(NotificationOperation.ACTIVATION, "alice@x.com", LINK)

    @pytest.mark.asyncio
    async def test_connection_failure_raises_notifier_error(self, smtp_notifier):
        with patch(
            "authgate.services.notifier.smtplib.SMTP",
            MagicMock(side_effect=ConnectionRefusedError("refused")),
        ):
            with pytest.raises(NotifierError):
                await smtp_notifier.send(NotificationOperation.ACTIVATION, "alice@x.com", LINK)
