"""Outbound email.

Delivery goes over SMTP when credentials are configured. Without them the
message is logged instead, which is how local development reads reset codes.
``send`` is a coroutine that never raises; routes schedule it as a background
task so no response waits on the mail server.
"""

import logging
from email.message import EmailMessage
from typing import Any

import aiosmtplib

from mkcode.config import Settings

logger = logging.getLogger("mkcode.mailer")

SMTP_TIMEOUT_SECONDS = 10

TEMPLATES: dict[str, dict[str, str]] = {
    "welcome": {
        "subject": "Welcome to MKcode!",
        "text": (
            "Hello {name}!\n\n"
            "Thank you for joining MKcode. Please confirm your email address:\n"
            "{verify_url}\n\n"
            "This link expires in {expires_hours} hours."
        ),
    },
    "verify_email": {
        "subject": "Confirm your email - MKcode",
        "text": "Hello {name}!\n\nConfirm your email address:\n{verify_url}\n\nThis link expires in {expires_hours} hours.",
    },
    "password_reset": {
        "subject": "Password Reset Code - MKcode",
        "text": (
            "Hello {name}!\n\n"
            "You requested to reset your password. Your verification code is:\n\n"
            "    {code}\n\n"
            "The code expires in {expires_minutes} minutes. If you did not request this, ignore this email."
        ),
    },
    "password_changed": {
        "subject": "Password Changed Successfully - MKcode",
        "text": (
            "Hello {name}!\n\n"
            "Your password has been changed. If you did not make this change, contact support immediately.\n"
            "{login_url}"
        ),
    },
}


class Mailer:
    """Renders a template kind and delivers it."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @property
    def is_configured(self) -> bool:
        return self.settings.smtp_configured

    def render(self, kind: str, params: dict[str, Any]) -> EmailMessage:
        tpl = TEMPLATES[kind]
        message = EmailMessage()
        message["Subject"] = tpl["subject"]
        message["From"] = self.settings.MAIL_FROM
        message.set_content(tpl["text"].format(**params))
        return message

    async def send(self, to: str, kind: str, params: dict[str, Any] | None = None) -> bool:
        """Send a templated email. Returns False on failure, never raises."""
        try:
            message = self.render(kind, params or {})
        except KeyError as e:
            logger.error("Cannot render '%s' email: missing %s", kind, e)
            return False
        message["To"] = to

        if not self.is_configured:
            logger.info("Email skipped (SMTP not configured) to %s: %s\n%s", to, message["Subject"], message.get_content())
            return True

        try:
            async with aiosmtplib.SMTP(
                hostname=self.settings.SMTP_HOST,
                port=self.settings.SMTP_PORT,
                start_tls=True,
                timeout=SMTP_TIMEOUT_SECONDS,
            ) as smtp:
                await smtp.login(self.settings.SMTP_USER, self.settings.SMTP_PASS)
                await smtp.send_message(message)
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error("Failed to send '%s' email to %s: %s", kind, to, e)
            return False

        logger.info("Email sent to %s: %s", to, kind)
        return True
