"""
Invitation and password reset flow

A link carries an encrypted payload (email, user id, type, created_at).
Reset links also need an unused, unexpired database token; invitation
links consume one when present. Setting the password activates invited
accounts and invalidates every outstanding token of the user.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import select, update, delete, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vendors_manager.core.config import settings
from vendors_manager.core.logging_config import get_logger
from vendors_manager.core.security import hash_password, validate_password_strength
from vendors_manager.core.token_encryption import (
    TokenData,
    TokenDecryptionError,
    build_token_data,
    decrypt_token,
    encrypt_token,
    generate_random_token,
    get_token_expiration_date,
    get_token_expiry_hours,
    is_token_expired,
)
from vendors_manager.models import EmailRateLimit, InvitationAuditLog, PasswordResetToken, User
from vendors_manager.services.email import (
    EmailResult,
    invitation_email,
    is_email_available,
    password_reset_email,
    send_email,
)

logger = get_logger(__name__)

FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, a password reset link has been sent."

# verify_link_token reasons, reworded for the password setup form
SETUP_PASSWORD_MESSAGES = {
    "Token is missing": "Invalid or missing token",
    "Invalid or tampered token": "Invalid or tampered token. Please request a new link.",
    "This link has expired": "This link has expired. Please request a new one.",
    "User account not found": "User account not found. Please contact your administrator.",
    "Invalid token": "Invalid token. Please request a new link.",
    "This account has been deactivated": "This account has been deactivated. Please contact your administrator.",
    "This reset link has already been used or has expired": (
        "This reset link has already been used or has expired. Please request a new one."
    ),
}


class TokenError(Exception):
    """Link token rejected; message is safe to show"""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class PasswordPolicyError(Exception):
    def __init__(self, errors: List[str]):
        super().__init__(". ".join(errors))
        self.errors = errors


class RateLimitExceeded(Exception):
    pass


class EmailUnavailable(Exception):
    pass


@dataclass
class VerifiedToken:
    user: User
    data: TokenData
    db_token: Optional[PasswordResetToken] = None


def build_setup_url(url_token: str) -> str:
    return f"{settings.APP_BASE_URL.rstrip('/')}/auth/setup-password?token={url_token}"


async def find_valid_db_token(
    db: AsyncSession, user_id: int, token_type: str
) -> Optional[PasswordResetToken]:
    result = await db.execute(
        select(PasswordResetToken)
        .where(
            PasswordResetToken.user_id == user_id,
            PasswordResetToken.type == token_type,
            PasswordResetToken.used_at.is_(None),
            PasswordResetToken.expires_at > datetime.utcnow(),
        )
        .order_by(PasswordResetToken.created_at.desc(), PasswordResetToken.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def verify_link_token(db: AsyncSession, token: Optional[str]) -> VerifiedToken:
    """Raise TokenError with a user-facing reason when the link cannot be used"""
    if not token:
        raise TokenError("Token is missing")
    try:
        data = decrypt_token(token)
    except TokenDecryptionError:
        raise TokenError("Invalid or tampered token")

    if is_token_expired(data):
        raise TokenError("This link has expired")

    user = await db.get(User, int(data["user_id"]))
    if user is None:
        raise TokenError("User account not found", status_code=404)
    if user.email.lower() != str(data["email"]).lower():
        raise TokenError("Invalid token")
    if not user.is_active:
        raise TokenError("This account has been deactivated", status_code=403)

    db_token = await find_valid_db_token(db, user.id, data["type"])
    if data["type"] == "reset" and db_token is None:
        raise TokenError("This reset link has already been used or has expired")

    return VerifiedToken(user=user, data=data, db_token=db_token)


async def create_link_token(db: AsyncSession, user: User, token_type: str) -> str:
    """Store a database token and return the matching encrypted link token"""
    db.add(PasswordResetToken(
        user_id=user.id,
        token=generate_random_token(),
        type=token_type,
        expires_at=get_token_expiration_date(token_type),
    ))
    return encrypt_token(build_token_data(user.email, user.id, token_type))


def add_audit_log(
    db: AsyncSession,
    user_id: int,
    action: str,
    previous_status: Optional[str] = None,
    new_status: Optional[str] = None,
    triggered_by: Optional[int] = None,
    details: Optional[dict] = None,
) -> InvitationAuditLog:
    log = InvitationAuditLog(
        user_id=user_id,
        action=action,
        previous_status=previous_status,
        new_status=new_status,
        triggered_by=triggered_by,
        details=details,
    )
    db.add(log)
    return log


async def setup_password(db: AsyncSession, token: str, password: str, confirm_password: str) -> User:
    if not token:
        raise TokenError("Token is missing")
    if not password or not confirm_password:
        raise PasswordPolicyError(["Password and confirmation are required"])
    if password != confirm_password:
        raise PasswordPolicyError(["Passwords do not match"])
    errors = validate_password_strength(password)
    if errors:
        raise PasswordPolicyError(errors)

    verified = await verify_link_token(db, token)
    user, token_type = verified.user, verified.data["type"]
    now = datetime.utcnow()
    previous_status = user.status

    try:
        if verified.db_token is not None:
            verified.db_token.used_at = now

        user.password = hash_password(password)
        user.password_set_at = now
        if token_type == "invitation":
            user.status = "active"
            user.invitation_accepted_at = now

        await db.execute(
            update(PasswordResetToken)
            .where(PasswordResetToken.user_id == user.id, PasswordResetToken.used_at.is_(None))
            .values(used_at=now)
        )
        if token_type == "invitation":
            add_audit_log(
                db, user.id, "invitation_accepted",
                previous_status=previous_status,
                new_status="active",
                details={"email": user.email, "accepted_at": now.isoformat()},
            )
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise

    await db.refresh(user)
    logger.info(f"🔑 Password set for {user.email} via {token_type} link")
    return user


async def send_invitation(db: AsyncSession, user: User, triggered_by: Optional[int] = None) -> EmailResult:
    """Issue a fresh invitation link and e-mail it"""
    if not is_email_available():
        raise EmailUnavailable("Email service is not configured. Cannot send invitation.")

    url_token = await create_link_token(db, user, "invitation")
    user.invitation_sent_at = datetime.utcnow()
    add_audit_log(
        db, user.id, "invitation_sent",
        previous_status=user.status,
        new_status=user.status,
        triggered_by=triggered_by,
        details={"email": user.email},
    )
    await db.commit()

    expiry_hours = get_token_expiry_hours("invitation")
    subject, text = invitation_email(user.name, build_setup_url(url_token), expiry_hours)
    result = await send_email(user.email, subject, text)
    if not result.success:
        logger.warning(f"Invitation e-mail to {user.email} failed: {result.error}")
    return result


# ============================================================
# Rate limiting (fixed window stored in the database)
# ============================================================

async def check_rate_limit(db: AsyncSession, identifier: str) -> bool:
    result = await db.execute(select(EmailRateLimit).where(EmailRateLimit.identifier == identifier))
    record = result.scalar_one_or_none()
    window_start = datetime.utcnow() - timedelta(minutes=settings.EMAIL_RATE_LIMIT_WINDOW_MINUTES)
    if record is None or record.window_start < window_start:
        return True
    return record.count < settings.EMAIL_RATE_LIMIT_MAX


async def increment_rate_limit(db: AsyncSession, identifier: str) -> None:
    result = await db.execute(select(EmailRateLimit).where(EmailRateLimit.identifier == identifier))
    record = result.scalar_one_or_none()
    now = datetime.utcnow()
    window_start = now - timedelta(minutes=settings.EMAIL_RATE_LIMIT_WINDOW_MINUTES)
    if record is None:
        db.add(EmailRateLimit(identifier=identifier, count=1, window_start=now))
    elif record.window_start < window_start:
        record.count = 1
        record.window_start = now
    else:
        record.count += 1


async def request_password_reset(db: AsyncSession, email: str) -> None:
    """
    Send a reset link when an active account exists

    Nothing tells the caller whether the address is known.
    """
    normalized = email.strip().lower()
    identifier = f"password-reset:{normalized}"
    if not await check_rate_limit(db, identifier):
        raise RateLimitExceeded("Too many password reset requests. Please try again later.")

    result = await db.execute(select(User).where(User.email == normalized))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        logger.info("Password reset requested for unknown or inactive account")
        return

    if not is_email_available():
        raise EmailUnavailable("Email service is not configured. Please contact your administrator.")

    await db.execute(
        update(PasswordResetToken)
        .where(
            PasswordResetToken.user_id == user.id,
            PasswordResetToken.type == "reset",
            PasswordResetToken.used_at.is_(None),
        )
        .values(used_at=datetime.utcnow())
    )
    url_token = await create_link_token(db, user, "reset")
    add_audit_log(db, user.id, "password_reset_requested", details={"email": user.email})
    await increment_rate_limit(db, identifier)
    await db.commit()

    subject, text = password_reset_email(user.name, build_setup_url(url_token), get_token_expiry_hours("reset"))
    email_result = await send_email(user.email, subject, text)
    if not email_result.success:
        logger.error(f"Failed to send password reset e-mail: {email_result.error}")


async def purge_expired_tokens(db: AsyncSession) -> int:
    """Delete tokens that are used or past their expiry"""
    result = await db.execute(
        delete(PasswordResetToken).where(
            or_(
                PasswordResetToken.expires_at < datetime.utcnow(),
                PasswordResetToken.used_at.isnot(None),
            )
        )
    )
    await db.commit()
    return result.rowcount or 0
