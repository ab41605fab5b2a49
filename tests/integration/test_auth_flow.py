"""
Integration tests for complete authentication flows.

Tests end-to-end scenarios:
- Signup → Login → Access protected resource
- Single admin account
- Missing, malformed and expired tokens
- Permission-based access control
"""

from datetime import timedelta

import pytest

from core.middleware.authorization import Identity
from core.security import create_access_token
from database.models.users import UserRole

PASSWORD = "SecurePass123!"


async def _signup(client, email, role="candidate", **overrides):
    payload = {
        "email": email,
        "password": PASSWORD,
        "first_name": "New",
        "last_name": "User",
        "role": role,
    }
    payload.update(overrides)
    return await client.post("/api/v1/auth/signup", json=payload)


async def _login(client, email, password=PASSWORD):
    return await client.post(
        "/api/v1/auth/login", json={"email": email, "password": password}
    )


class TestCompleteSignupLoginFlow:
    """Test complete signup and login flow."""

    @pytest.mark.asyncio
    async def test_signup_then_login(self, client):
        """A new account can log in and read itself."""
        signup_response = await _signup(client, "newuser@example.com", role="hr")
        assert signup_response.status_code == 201
        created = signup_response.json()
        assert created["role"] == "hr"

        login_response = await _login(client, "newuser@example.com")
        assert login_response.status_code == 200
        tokens = login_response.json()
        assert tokens["token_type"] == "bearer"
        assert tokens["expires_in"] > 0
        assert tokens["user"]["user_id"] == created["user_id"]

        me = await client.get(
            "/api/v1/auth/me",
            headers={"Authorization": f"Bearer {tokens['access_token']}"},
        )
        assert me.status_code == 200
        assert me.json()["email"] == "newuser@example.com"
        assert me.json()["role"] == "hr"

    @pytest.mark.asyncio
    async def test_role_defaults_to_candidate(self, client):
        response = await client.post(
            "/api/v1/auth/signup",
            json={
                "email": "default@example.com",
                "password": PASSWORD,
                "first_name": "Dee",
                "last_name": "Fault",
            },
        )

        assert response.status_code == 201
        assert response.json()["role"] == "candidate"

    @pytest.mark.asyncio
    async def test_duplicate_signup(self, client):
        await _signup(client, "twice@example.com")

        response = await _signup(client, "Twice@Example.com")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "DUPLICATE_EMAIL"

    @pytest.mark.asyncio
    async def test_second_admin_rejected(self, client):
        assert (await _signup(client, "boss@example.com", role="admin")).status_code == 201

        response = await _signup(client, "boss2@example.com", role="admin")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "ADMIN_ALREADY_EXISTS"

    @pytest.mark.asyncio
    async def test_short_password_rejected(self, client):
        response = await _signup(client, "short@example.com", password="abc")

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_bad_credentials(self, client):
        await _signup(client, "real@example.com")

        wrong = await _login(client, "real@example.com", "WrongPass123!")
        unknown = await _login(client, "ghost@example.com")

        assert wrong.status_code == 401
        assert unknown.status_code == 401
        assert wrong.json()["error"]["code"] == "INVALID_CREDENTIALS"
        assert wrong.json()["error"]["message"] == unknown.json()["error"]["message"]


class TestTokenHandling:
    """Bearer token checks on protected routes."""

    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.get("/api/v1/auth/me")

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_malformed_token(self, client):
        response = await client.get(
            "/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_expired_token(self, client, candidate):
        token = create_access_token(
            candidate.user_id, "candidate", expires_delta=timedelta(minutes=-1)
        )

        response = await client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_token_for_deleted_user(self, client, auth_headers):
        ghost = Identity(user_id=4242, role=UserRole.HR)

        response = await client.get("/api/v1/auth/me", headers=auth_headers(ghost))

        assert response.status_code == 404


class TestPermissionBasedAccess:
    """Role checks surface as 403 envelopes."""

    @pytest.mark.asyncio
    async def test_candidate_cannot_post_job(self, client, candidate, auth_headers):
        response = await client.post(
            "/api/v1/jobs",
            json={
                "title": "Sneaky",
                "role": "Engineer",
                "location": "Remote",
                "description": "Nope",
            },
            headers=auth_headers(candidate),
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    @pytest.mark.asyncio
    async def test_hr_lists_users_by_role(self, client, hr, candidate, auth_headers):
        response = await client.get(
            "/api/v1/users", params={"role": "candidate"}, headers=auth_headers(hr)
        )

        assert response.status_code == 200
        assert [u["id"] for u in response.json()] == [candidate.user_id]

    @pytest.mark.asyncio
    async def test_candidate_cannot_list_users(self, client, candidate, auth_headers):
        response = await client.get(
            "/api/v1/users", params={"role": "hr"}, headers=auth_headers(candidate)
        )

        assert response.status_code == 403
