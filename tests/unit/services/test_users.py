"""
Tests for signup, login and the user directory.
"""

import pytest

from api.services import users as user_service
from core.exceptions import (
    AdminAlreadyExists,
    DuplicateEmail,
    Forbidden,
    InvalidCredentials,
)
from database.models.users import UserRole

TEST_PASSWORD = "SecurePass123!"


async def _signup(session, email, role=UserRole.CANDIDATE):
    return await user_service.signup(
        session,
        email=email,
        password=TEST_PASSWORD,
        first_name="Test",
        last_name="User",
        role=role,
    )


class TestSignup:
    """Account registration."""

    @pytest.mark.asyncio
    async def test_signup_returns_id_and_role(self, session):
        result = await _signup(session, "new@example.com", UserRole.HR)

        assert result["user_id"] > 0
        assert result["role"] == "hr"

    @pytest.mark.asyncio
    async def test_duplicate_email(self, session):
        await _signup(session, "dup@example.com")

        with pytest.raises(DuplicateEmail):
            await _signup(session, "dup@example.com", UserRole.HR)

    @pytest.mark.asyncio
    async def test_duplicate_email_case_insensitive(self, session):
        await _signup(session, "Case@Example.com")

        with pytest.raises(DuplicateEmail):
            await _signup(session, "case@example.com")

    @pytest.mark.asyncio
    async def test_single_admin(self, session):
        await _signup(session, "admin@example.com", UserRole.ADMIN)

        with pytest.raises(AdminAlreadyExists):
            await _signup(session, "admin2@example.com", UserRole.ADMIN)

        # A second hr account is fine
        await _signup(session, "hr1@example.com", UserRole.HR)
        await _signup(session, "hr2@example.com", UserRole.HR)

    @pytest.mark.asyncio
    async def test_password_is_hashed(self, session):
        await _signup(session, "hash@example.com")

        user = await user_service.get_user_by_email(session, "hash@example.com")
        assert user.password_hash != TEST_PASSWORD
        assert user.password_hash.startswith("$2b$")


class TestLogin:
    """Credential checks."""

    @pytest.mark.asyncio
    async def test_login_success(self, session):
        created = await _signup(session, "login@example.com", UserRole.HR)

        result = await user_service.login(session, "LOGIN@example.com", TEST_PASSWORD)

        assert result["user_id"] == created["user_id"]
        assert result["role"] == "hr"
        assert result["email"] == "login@example.com"
        assert result["first_name"] == "Test"

    @pytest.mark.asyncio
    async def test_wrong_password(self, session):
        await _signup(session, "wrong@example.com")

        with pytest.raises(InvalidCredentials):
            await user_service.login(session, "wrong@example.com", "NotThePassword1")

    @pytest.mark.asyncio
    async def test_unknown_email_is_indistinguishable(self, session):
        with pytest.raises(InvalidCredentials) as exc_info:
            await user_service.login(session, "nobody@example.com", TEST_PASSWORD)

        assert exc_info.value.message == "Invalid email or password"


class TestDirectory:
    """User lookups."""

    @pytest.mark.asyncio
    async def test_get_current_user(self, session, hr):
        user = await user_service.get_current_user(session, hr.user_id)

        assert user["id"] == hr.user_id
        assert user["role"] == "hr"
        assert "password_hash" not in user

    @pytest.mark.asyncio
    async def test_get_current_user_missing(self, session):
        assert await user_service.get_current_user(session, 999) is None

    @pytest.mark.asyncio
    async def test_users_by_role(self, session, admin, hr, make_user):
        second_hr = await make_user(UserRole.HR)

        result = await user_service.get_users_by_role(session, admin, UserRole.HR)

        assert [u["id"] for u in result] == [hr.user_id, second_hr.user_id]

    @pytest.mark.asyncio
    async def test_candidates_cannot_list_users(self, session, candidate):
        with pytest.raises(Forbidden):
            await user_service.get_users_by_role(session, candidate, UserRole.HR)
