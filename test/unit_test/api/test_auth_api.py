import re

import pytest

from vendors_manager.core.config import settings
from vendors_manager.core.token_encryption import build_token_data, encrypt_token
from vendors_manager.services import auth_tokens
from vendors_manager.services.auth_tokens import FORGOT_PASSWORD_MESSAGE, create_link_token
from vendors_manager.services.email import EmailResult

API = "/api/auth"
TEST_PASSWORD = "Str0ng!Pass"


class TestLogin:
    async def test_login_returns_bearer_token(self, client, writer):
        response = await client.post(f"{API}/login", json={"email": "Writer@Example.com", "password": TEST_PASSWORD})
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["token_type"] == "bearer"
        assert body["data"]["user"]["email"] == "writer@example.com"

        me = await client.get(
            f"{API}/me", headers={"Authorization": f"Bearer {body['data']['access_token']}"}
        )
        assert me.status_code == 200
        assert me.json()["data"]["user"]["id"] == writer.id

    async def test_wrong_password(self, client, writer):
        response = await client.post(f"{API}/login", json={"email": writer.email, "password": "nope"})
        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Invalid email or password"}

    @pytest.mark.parametrize(
        "overrides,error",
        [
            ({"is_active": False}, "Your account is inactive"),
            ({"permission_level": "denied"}, "Your account has been denied access to this system."),
            ({"status": "invited"}, "Please set your password using the invitation link first"),
        ],
    )
    async def test_blocked_accounts(self, client, make_user, overrides, error):
        user = await make_user("blocked@example.com", **overrides)
        response = await client.post(f"{API}/login", json={"email": user.email, "password": TEST_PASSWORD})
        assert response.status_code == 403
        assert response.json()["error"] == error

    async def test_invalid_email_is_a_validation_error(self, client):
        response = await client.post(f"{API}/login", json={"email": "not-an-email", "password": "x"})
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation failed"
        assert body["details"][0]["field"] == "email"


async def test_me_requires_token(client):
    response = await client.get(f"{API}/me")
    assert response.status_code == 401
    assert response.json()["error"] == "Authentication required"


async def test_change_password(client, writer, writer_headers):
    response = await client.post(
        f"{API}/change-password",
        headers=writer_headers,
        json={"current_password": TEST_PASSWORD, "new_password": "N3w!Password", "confirm_password": "N3w!Password"},
    )
    assert response.status_code == 200
    login = await client.post(f"{API}/login", json={"email": writer.email, "password": "N3w!Password"})
    assert login.status_code == 200


class TestLinks:
    async def test_verify_token_reports_invalid_links(self, client):
        response = await client.get(f"{API}/verify-token", params={"token": "garbage"})
        assert response.status_code == 200
        assert response.json()["data"] == {
            "valid": False, "email": None, "name": None, "type": None, "error": "Invalid or tampered token",
        }

    async def test_invitation_flow(self, client, session, make_user):
        invited = await make_user("new@example.com", status="invited", name="New Person")
        token = await create_link_token(session, invited, "invitation")
        await session.commit()

        verified = await client.get(f"{API}/verify-token", params={"token": token})
        assert verified.json()["data"]["valid"] is True
        assert verified.json()["data"]["name"] == "New Person"
        assert verified.json()["data"]["type"] == "invitation"

        response = await client.post(
            f"{API}/setup-password",
            json={"token": token, "password": "N3w!Password", "confirm_password": "N3w!Password"},
        )
        assert response.status_code == 200

        login = await client.post(f"{API}/login", json={"email": invited.email, "password": "N3w!Password"})
        assert login.status_code == 200
        assert login.json()["data"]["user"]["status"] == "active"

    async def test_setup_password_with_bad_token(self, client):
        response = await client.post(
            f"{API}/setup-password",
            json={"token": "garbage", "password": "N3w!Password", "confirm_password": "N3w!Password"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid or tampered token. Please request a new link."

    async def test_forgot_password_answer_does_not_leak(self, client, writer, monkeypatch):
        sent = []

        async def fake_send_email(to, subject, text, html=None):
            sent.append(text)
            return EmailResult(True)

        monkeypatch.setattr(auth_tokens, "send_email", fake_send_email)

        known = await client.post(f"{API}/forgot-password", json={"email": writer.email})
        unknown = await client.post(f"{API}/forgot-password", json={"email": "nobody@example.com"})
        assert known.json() == unknown.json() == {"success": True, "message": FORGOT_PASSWORD_MESSAGE}
        assert len(sent) == 1
        assert re.search(r"token=[A-Za-z0-9_-]+", sent[0])

    async def test_forgot_password_rate_limit(self, client, writer, monkeypatch):
        monkeypatch.setattr(auth_tokens.settings, "EMAIL_RATE_LIMIT_MAX", 1)
        first = await client.post(f"{API}/forgot-password", json={"email": writer.email})
        second = await client.post(f"{API}/forgot-password", json={"email": writer.email})
        assert first.status_code == 200
        assert second.status_code == 429

    async def test_forgot_password_without_mail_backend(self, client, writer, monkeypatch):
        monkeypatch.setattr(settings, "EMAIL_BACKEND", "smtp")
        monkeypatch.setattr(settings, "SMTP_HOST", None)

        unknown = await client.post(f"{API}/forgot-password", json={"email": "nobody@example.com"})
        assert unknown.status_code == 200
        assert unknown.json()["message"] == FORGOT_PASSWORD_MESSAGE

        known = await client.post(f"{API}/forgot-password", json={"email": writer.email})
        assert known.status_code == 503
        assert known.json()["error"] == "Email service is not configured. Please contact your administrator."


class TestSetupPasswordStatus:
    PASSWORDS = {"password": "N3w!Password", "confirm_password": "N3w!Password"}

    async def test_deactivated_account(self, client, session, make_user):
        user = await make_user("gone@example.com", is_active=False, status="invited")
        token = await create_link_token(session, user, "invitation")
        await session.commit()

        response = await client.post(f"{API}/setup-password", json={"token": token, **self.PASSWORDS})
        assert response.status_code == 403
        assert response.json()["error"] == (
            "This account has been deactivated. Please contact your administrator."
        )

    async def test_missing_account(self, client):
        token = encrypt_token(build_token_data("ghost@example.com", 999, "invitation"))
        response = await client.post(f"{API}/setup-password", json={"token": token, **self.PASSWORDS})
        assert response.status_code == 404
        assert response.json()["error"] == "User account not found. Please contact your administrator."
