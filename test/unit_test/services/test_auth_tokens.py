"""
Unit tests for invitation / password reset links.
"""

import re
from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from vendors_manager.core.config import settings
from vendors_manager.core.security import verify_password
from vendors_manager.core.token_encryption import build_token_data, encrypt_token
from vendors_manager.models import InvitationAuditLog, PasswordResetToken
from vendors_manager.services import auth_tokens
from vendors_manager.services.auth_tokens import (
    PasswordPolicyError,
    RateLimitExceeded,
    TokenError,
    create_link_token,
    purge_expired_tokens,
    request_password_reset,
    setup_password,
    verify_link_token,
)
from vendors_manager.services.email import EmailResult

NEW_PASSWORD = "N3w!Password"


@pytest.fixture
def outbox(monkeypatch):
    sent = []

    async def fake_send_email(to, subject, text, html=None):
        sent.append({"to": to, "subject": subject, "text": text})
        return EmailResult(True)

    monkeypatch.setattr(auth_tokens, "send_email", fake_send_email)
    return sent


def token_from(message: dict) -> str:
    return re.search(r"token=([A-Za-z0-9_-]+)", message["text"]).group(1)


class TestVerifyLinkToken:
    async def test_missing_and_garbage(self, session):
        with pytest.raises(TokenError, match="Token is missing"):
            await verify_link_token(session, "")
        with pytest.raises(TokenError, match="Invalid or tampered token"):
            await verify_link_token(session, "garbage")

    async def test_reset_link_needs_database_token(self, session, writer):
        token = encrypt_token(build_token_data(writer.email, writer.id, "reset"))
        with pytest.raises(TokenError, match="already been used"):
            await verify_link_token(session, token)

    async def test_invitation_link_without_database_token_is_accepted(self, session, make_user):
        invited = await make_user("new@example.com", status="invited")
        token = encrypt_token(build_token_data(invited.email, invited.id, "invitation"))
        verified = await verify_link_token(session, token)
        assert verified.user.id == invited.id
        assert verified.db_token is None

    async def test_email_mismatch(self, session, writer):
        token = encrypt_token(build_token_data("someone@example.com", writer.id, "invitation"))
        with pytest.raises(TokenError, match="Invalid token"):
            await verify_link_token(session, token)

    async def test_deactivated_account(self, session, make_user):
        user = await make_user("gone@example.com", is_active=False)
        token = encrypt_token(build_token_data(user.email, user.id, "invitation"))
        with pytest.raises(TokenError, match="deactivated") as exc:
            await verify_link_token(session, token)
        assert exc.value.status_code == 403

    async def test_expired_link(self, session, writer):
        data = build_token_data(writer.email, writer.id, "reset")
        data["created_at"] -= 3 * 60 * 60 * 1000
        with pytest.raises(TokenError, match="expired"):
            await verify_link_token(session, encrypt_token(data))


class TestSetupPassword:
    async def test_invitation_activates_account(self, session, make_user):
        invited = await make_user("new@example.com", status="invited")
        token = await create_link_token(session, invited, "invitation")
        await session.commit()

        user = await setup_password(session, token, NEW_PASSWORD, NEW_PASSWORD)

        assert user.status == "active"
        assert user.invitation_accepted_at is not None
        assert verify_password(NEW_PASSWORD, user.password)
        tokens = (await session.execute(select(PasswordResetToken))).scalars().all()
        assert all(t.used_at is not None for t in tokens)
        actions = (await session.execute(select(InvitationAuditLog.action))).scalars().all()
        assert actions == ["invitation_accepted"]

    async def test_reset_link_is_single_use(self, session, writer):
        token = await create_link_token(session, writer, "reset")
        await session.commit()
        await setup_password(session, token, NEW_PASSWORD, NEW_PASSWORD)
        with pytest.raises(TokenError):
            await setup_password(session, token, "An0ther!Pass", "An0ther!Pass")

    async def test_password_rules_are_checked_first(self, session, writer):
        with pytest.raises(PasswordPolicyError) as exc:
            await setup_password(session, "whatever", NEW_PASSWORD, "different")
        assert exc.value.errors == ["Passwords do not match"]
        with pytest.raises(PasswordPolicyError) as exc:
            await setup_password(session, "whatever", "weak", "weak")
        assert "Password must be at least 8 characters long" in exc.value.errors


class TestPasswordReset:
    async def test_known_address_gets_a_working_link(self, session, writer, outbox):
        await request_password_reset(session, "  Writer@Example.com ")
        assert [m["to"] for m in outbox] == ["writer@example.com"]
        verified = await verify_link_token(session, token_from(outbox[0]))
        assert verified.user.id == writer.id

    async def test_new_request_invalidates_previous_link(self, session, writer, outbox):
        await request_password_reset(session, writer.email)
        await request_password_reset(session, writer.email)
        _, second = (token_from(m) for m in outbox)
        # both links carry a valid payload, only the newest database token is unused
        unused = (
            await session.execute(select(PasswordResetToken).where(PasswordResetToken.used_at.is_(None)))
        ).scalars().all()
        assert len(unused) == 1
        await verify_link_token(session, second)

    async def test_unknown_address_is_silent(self, session, outbox):
        await request_password_reset(session, "nobody@example.com")
        assert outbox == []

    async def test_rate_limit(self, session, writer, outbox, monkeypatch):
        monkeypatch.setattr(settings, "EMAIL_RATE_LIMIT_MAX", 2)
        await request_password_reset(session, writer.email)
        await request_password_reset(session, writer.email)
        with pytest.raises(RateLimitExceeded):
            await request_password_reset(session, writer.email)
        assert len(outbox) == 2


async def test_purge_removes_used_and_expired_tokens(session, writer):
    now = datetime.utcnow()
    session.add_all([
        PasswordResetToken(user_id=writer.id, token="a" * 64, type="reset", expires_at=now + timedelta(hours=1)),
        PasswordResetToken(user_id=writer.id, token="b" * 64, type="reset", expires_at=now - timedelta(hours=1)),
        PasswordResetToken(
            user_id=writer.id, token="c" * 64, type="reset", expires_at=now + timedelta(hours=1), used_at=now,
        ),
    ])
    await session.commit()
    assert await purge_expired_tokens(session) == 2
    remaining = (await session.execute(select(PasswordResetToken.token))).scalars().all()
    assert remaining == ["a" * 64]
