"""Transactional email over SMTP. Every send returns True/False and never raises."""

from __future__ import annotations

import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from functools import lru_cache
from typing import TYPE_CHECKING

from app.core.config import get_settings

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SEC = 10


def redact_email(email: str) -> str:
    """Redact an email address for logging."""
    if "@" not in email:
        return "redacted"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


class EmailService:
    """Sends password-reset OTPs and verification links. Logs instead of sending when unconfigured."""

    def __init__(
        self,
        *,
        smtp_host: str | None = None,
        smtp_port: int = 587,
        smtp_user: str | None = None,
        smtp_password: str | None = None,
        smtp_use_tls: bool = True,
        from_email: str | None = None,
        from_name: str = "TaskHub",
        frontend_url: str = "http://localhost:5173",
    ) -> None:
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.smtp_use_tls = smtp_use_tls
        self.from_email = from_email or smtp_user
        self.from_name = from_name
        self.frontend_url = frontend_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> EmailService:
        return cls(
            smtp_host=settings.SMTP_HOST,
            smtp_port=settings.SMTP_PORT,
            smtp_user=settings.SMTP_USER,
            smtp_password=(
                settings.SMTP_PASSWORD.get_secret_value() if settings.SMTP_PASSWORD else None
            ),
            smtp_use_tls=settings.SMTP_USE_TLS,
            from_email=settings.SMTP_FROM_EMAIL,
            from_name=settings.SMTP_FROM_NAME,
            frontend_url=settings.FRONTEND_URL,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host and self.from_email)

    def _send(self, to_email: str, subject: str, text_body: str, html_body: str) -> bool:
        if not self.is_configured:
            logger.info(
                "SMTP not configured; email not sent: to=%s subject=%s",
                redact_email(to_email),
                subject,
            )
            return True

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email
        msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))
        try:
            if self.smtp_use_tls:
                with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=SMTP_TIMEOUT_SEC) as server:
                    server.starttls(context=ssl.create_default_context())
                    if self.smtp_user and self.smtp_password:
                        server.login(self.smtp_user, self.smtp_password)
                    server.sendmail(self.from_email, [to_email], msg.as_string())
            else:
                with smtplib.SMTP_SSL(
                    self.smtp_host,
                    self.smtp_port,
                    timeout=SMTP_TIMEOUT_SEC,
                    context=ssl.create_default_context(),
                ) as server:
                    if self.smtp_user and self.smtp_password:
                        server.login(self.smtp_user, self.smtp_password)
                    server.sendmail(self.from_email, [to_email], msg.as_string())
        except (smtplib.SMTPException, OSError):
            logger.exception("Failed to send email: to=%s subject=%s", redact_email(to_email), subject)
            return False
        logger.info("Email sent: to=%s subject=%s", redact_email(to_email), subject)
        return True

    def send_password_reset_otp(
        self, to_email: str, otp: str, first_name: str, expires_minutes: int
    ) -> bool:
        subject = "Your code to reset your password"
        text = (
            f"Hello {first_name},\n\n"
            f"Your one-time code for resetting your password is {otp}.\n"
            f"It is valid for {expires_minutes} minute(s).\n\n"
            "If you did not request a password reset, you can ignore this email."
        )
        html = (
            f"<p>Hello <strong>{first_name}</strong>,</p>"
            "<p>Use the code below to reset your password:</p>"
            f"<p style=\"font-size:24px;font-weight:bold\">{otp}</p>"
            f"<p>This code is valid for {expires_minutes} minute(s).</p>"
            "<p>If you did not request a password reset, you can ignore this email.</p>"
        )
        return self._send(to_email, subject, text, html)

    def send_verification_email(self, to_email: str, token: str, first_name: str) -> bool:
        link = f"{self.frontend_url}/verify-email/{token}"
        subject = "Verify your email address"
        text = (
            f"Hello {first_name},\n\n"
            f"Confirm your email address by opening this link:\n{link}\n\n"
            "If you did not create an account, you can ignore this email."
        )
        html = (
            f"<p>Hello <strong>{first_name}</strong>,</p>"
            f"<p><a href=\"{link}\">Confirm your email address</a></p>"
            "<p>If you did not create an account, you can ignore this email.</p>"
        )
        return self._send(to_email, subject, text, html)


@lru_cache
def get_email_service() -> EmailService:
    """Dependency: email service built from settings (override in tests)."""
    return EmailService.from_settings(get_settings())
