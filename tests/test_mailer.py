"""Tests for outbound email."""

from unittest.mock import AsyncMock, MagicMock, patch

import aiosmtplib
import pytest

from mkcode.config import Settings
from mkcode.services.mailer import TEMPLATES, Mailer


@pytest.fixture(name="smtp_settings")
def smtp_settings_fixture() -> Settings:
    return Settings(
        JWT_SECRET_KEY="test-secret-key",
        SMTP_HOST="smtp.test",
        SMTP_PORT=2525,
        SMTP_USER="mailer",
        SMTP_PASS="hunter2",
        MAIL_FROM="MKcode <noreply@mkcode.test>",
    )


def _smtp_mock() -> tuple[MagicMock, AsyncMock]:
    """An ``aiosmtplib.SMTP`` stand-in and the connection it yields."""
    smtp = AsyncMock()
    smtp.__aenter__ = AsyncMock(return_value=smtp)
    smtp.__aexit__ = AsyncMock(return_value=None)
    return MagicMock(return_value=smtp), smtp


class TestRender:
    """Tests for template rendering."""

    def test_reset_code_in_body(self, settings):
        message = Mailer(settings).render("password_reset", {"name": "Alice", "code": "042917", "expires_minutes": 15})
        assert message["Subject"] == TEMPLATES["password_reset"]["subject"]
        assert "042917" in message.get_content()
        assert "15 minutes" in message.get_content()

    @pytest.mark.asyncio
    async def test_missing_param_fails_send(self, settings):
        assert await Mailer(settings).send("a@example.com", "password_reset", {"name": "Alice"}) is False


class TestSend:
    """Tests for delivery."""

    @pytest.mark.asyncio
    async def test_unconfigured_logs_and_succeeds(self, settings, caplog):
        mailer = Mailer(settings)
        assert mailer.is_configured is False
        with caplog.at_level("INFO", logger="mkcode.mailer"):
            ok = await mailer.send("a@example.com", "password_changed", {"name": "Alice", "login_url": "http://x/login"})
        assert ok is True
        assert "SMTP not configured" in caplog.text

    @pytest.mark.asyncio
    async def test_delivers_over_smtp(self, smtp_settings):
        smtp_class, smtp = _smtp_mock()
        with patch("mkcode.services.mailer.aiosmtplib.SMTP", smtp_class):
            ok = await Mailer(smtp_settings).send(
                "a@example.com", "password_reset", {"name": "Alice", "code": "123456", "expires_minutes": 15}
            )
        assert ok is True
        smtp_class.assert_called_once_with(hostname="smtp.test", port=2525, start_tls=True, timeout=10)
        smtp.login.assert_awaited_once_with("mailer", "hunter2")
        sent = smtp.send_message.call_args[0][0]
        assert sent["To"] == "a@example.com"
        assert sent["From"] == "MKcode <noreply@mkcode.test>"

    @pytest.mark.asyncio
    async def test_smtp_failure_returns_false(self, smtp_settings):
        smtp_class, smtp = _smtp_mock()
        smtp.login.side_effect = aiosmtplib.SMTPAuthenticationError(535, "bad credentials")
        with patch("mkcode.services.mailer.aiosmtplib.SMTP", smtp_class):
            ok = await Mailer(smtp_settings).send("a@example.com", "password_changed", {"name": "A", "login_url": "u"})
        assert ok is False

    @pytest.mark.asyncio
    async def test_connection_refused_returns_false(self, smtp_settings):
        with patch("mkcode.services.mailer.aiosmtplib.SMTP", MagicMock(side_effect=ConnectionRefusedError())):
            ok = await Mailer(smtp_settings).send("a@example.com", "password_changed", {"name": "A", "login_url": "u"})
        assert ok is False
