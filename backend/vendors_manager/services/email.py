"""
Outgoing e-mail

EMAIL_BACKEND=console logs messages instead of sending them.
EMAIL_BACKEND=smtp delivers through SMTP_HOST.
"""

import asyncio
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional

from vendors_manager.core.config import settings
from vendors_manager.core.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class EmailResult:
    success: bool
    error: Optional[str] = None


def is_email_available() -> bool:
    if settings.EMAIL_BACKEND == "console":
        return True
    return settings.EMAIL_BACKEND == "smtp" and bool(settings.SMTP_HOST)


def _deliver_smtp(message: EmailMessage) -> None:
    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as smtp:
        if settings.SMTP_USE_TLS:
            smtp.starttls()
        if settings.SMTP_USER and settings.SMTP_PASSWORD:
            smtp.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
        smtp.send_message(message)


async def send_email(to: str, subject: str, text: str, html: Optional[str] = None) -> EmailResult:
    if not is_email_available():
        return EmailResult(False, "Email service is not configured")

    if settings.EMAIL_BACKEND == "console":
        logger.info(f"📧 [console] To: {to} | Subject: {subject}\n{text}")
        return EmailResult(True)

    message = EmailMessage()
    message["From"] = settings.EMAIL_FROM
    message["To"] = to
    message["Subject"] = subject
    message.set_content(text)
    if html:
        message.add_alternative(html, subtype="html")

    try:
        await asyncio.to_thread(_deliver_smtp, message)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"❌ Failed to send e-mail to {to}: {e}")
        return EmailResult(False, str(e))

    logger.info(f"📧 Sent '{subject}' to {to}")
    return EmailResult(True)


def invitation_email(user_name: str, setup_url: str, expiration_hours: int) -> tuple:
    subject = f"You're invited to {settings.PROJECT_NAME}"
    text = (
        f"Hello {user_name},\n\n"
        f"An account has been created for you on {settings.PROJECT_NAME}.\n"
        f"Set your password here (valid for {expiration_hours} hours):\n\n"
        f"{setup_url}\n"
    )
    return subject, text


def password_reset_email(user_name: str, reset_url: str, expiration_hours: int) -> tuple:
    subject = f"Reset your password - {settings.PROJECT_NAME}"
    text = (
        f"Hello {user_name},\n\n"
        f"A password reset was requested for your account.\n"
        f"Choose a new password here (valid for {expiration_hours} hours):\n\n"
        f"{reset_url}\n\n"
        "If you did not request this, you can ignore this e-mail.\n"
    )
    return subject, text
