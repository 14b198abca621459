"""
Tests for AuthService against a real (SQLite) session.
"""

import asyncio
from unittest.mock import patch

import pytest

from auth.exceptions import (
    InternalError,
    InvalidCredentialsError,
    RevocationError,
    ValidationError,
)
from auth.schemas import LoginRequest, RegisterRequest
from auth.service import AuthService
from database.repositories import TokenStore, UserStore
from database.session import async_session_factory

PASSWORD = "s3cret-password"


def _register_request(email: str = "grace@example.com") -> RegisterRequest:
    return RegisterRequest(
        name="Grace Hopper",
        email=email,
        password=PASSWORD,
        password_confirmation=PASSWORD,
    )


class TestRegister:
    @pytest.mark.asyncio
    async def test_stores_hashed_password_and_issues_token(self, session):
        result = await AuthService(session).register(_register_request())

        assert result.user.email == "grace@example.com"
        assert result.user.password_hash != PASSWORD
        assert result.user.password_hash.startswith("$2")
        assert await TokenStore(session).count_active(result.user.id) == 1
        token = await TokenStore(session).find_active(result.access_token)
        assert token is not None
        assert token.token_hash not in result.access_token

    @pytest.mark.asyncio
    async def test_duplicate_email_creates_no_row(self, session):
        service = AuthService(session)
        await service.register(_register_request())

        with pytest.raises(ValidationError) as excinfo:
            await service.register(_register_request("GRACE@example.com"))

        assert excinfo.value.status_code == 422
        assert "email" in excinfo.value.errors
        assert await UserStore(session).count() == 1

    @pytest.mark.asyncio
    async def test_unique_constraint_race_reported_as_validation_error(self, session):
        await AuthService(session).register(_register_request())

        # Pretend the pre-check ran before the other registration committed.
        async with async_session_factory() as other:
            with patch.object(UserStore, "find_by_email", return_value=None):
                with pytest.raises(ValidationError) as excinfo:
                    await AuthService(other).register(_register_request())

        assert excinfo.value.errors == {"email": ["The email has already been taken."]}
        assert await UserStore(session).count() == 1

    @pytest.mark.asyncio
    async def test_unexpected_failure_becomes_internal_error(self, session):
        with patch("auth.service.hash_password", side_effect=RuntimeError("boom")):
            with pytest.raises(InternalError) as excinfo:
                await AuthService(session).register(_register_request())

        assert excinfo.value.status_code == 500
        assert "details" not in excinfo.value.to_dict(debug=False)
        assert excinfo.value.to_dict(debug=True)["details"] == "boom"
        assert await UserStore(session).count() == 0


class TestLogin:
    @pytest.mark.asyncio
    async def test_round_trip(self, session):
        service = AuthService(session)
        registered = await service.register(_register_request())

        result = await service.login(LoginRequest(email="grace@example.com", password=PASSWORD))

        assert result.user.id == registered.user.id
        assert result.access_token != registered.access_token

    @pytest.mark.asyncio
    async def test_wrong_password(self, session):
        service = AuthService(session)
        await service.register(_register_request())

        with pytest.raises(InvalidCredentialsError):
            await service.login(LoginRequest(email="grace@example.com", password="nope-nope"))

    @pytest.mark.asyncio
    async def test_unknown_email_still_checks_a_hash(self, session):
        with patch("auth.service.verify_password", return_value=False) as verify:
            with pytest.raises(InvalidCredentialsError):
                await AuthService(session).login(
                    LoginRequest(email="ghost@example.com", password=PASSWORD)
                )

        verify.assert_called_once()

    @pytest.mark.asyncio
    async def test_leaves_exactly_one_active_token(self, session):
        service = AuthService(session)
        registered = await service.register(_register_request())
        tokens = TokenStore(session)
        await tokens.issue(registered.user)
        await session.commit()
        assert await tokens.count_active(registered.user.id) == 2

        result = await service.login(LoginRequest(email="grace@example.com", password=PASSWORD))

        assert await tokens.count_active(registered.user.id) == 1
        assert await tokens.find_active(registered.access_token) is None
        assert await tokens.find_active(result.access_token) is not None

    @pytest.mark.asyncio
    async def test_concurrent_logins_end_with_one_token(self, session):
        registered = await AuthService(session).register(_register_request())
        req = LoginRequest(email="grace@example.com", password=PASSWORD)

        async def login_in_own_session():
            async with async_session_factory() as db:
                return await AuthService(db).login(req)

        await asyncio.gather(login_in_own_session(), login_in_own_session())

        async with async_session_factory() as db:
            assert await TokenStore(db).count_active(registered.user.id) == 1


class TestLogout:
    @pytest.mark.asyncio
    async def test_revokes_only_presented_token(self, session):
        service = AuthService(session)
        registered = await service.register(_register_request())
        tokens = TokenStore(session)
        other = await tokens.issue(registered.user)
        await session.commit()

        current = await tokens.find_active(registered.access_token)
        await service.logout(current)

        assert await tokens.find_active(registered.access_token) is None
        assert await tokens.find_active(other.plain_text) is not None

    @pytest.mark.asyncio
    async def test_already_revoked(self, session):
        service = AuthService(session)
        registered = await service.register(_register_request())
        current = await TokenStore(session).find_active(registered.access_token)
        await service.logout(current)

        with pytest.raises(RevocationError) as excinfo:
            await service.logout(current)

        assert excinfo.value.status_code == 400
        assert excinfo.value.to_dict() == {
            "status": "error",
            "message": "Logout failed.",
            "details": "Could not revoke current token.",
        }

    @pytest.mark.asyncio
    async def test_store_failure_becomes_revocation_error(self, session):
        service = AuthService(session)
        registered = await service.register(_register_request())
        current = await TokenStore(session).find_active(registered.access_token)

        with patch.object(TokenStore, "revoke", side_effect=RuntimeError("db gone")):
            with pytest.raises(RevocationError):
                await service.logout(current)


class TestCurrentUser:
    @pytest.mark.asyncio
    async def test_public_fields(self, session):
        service = AuthService(session)
        registered = await service.register(_register_request())
        token = await TokenStore(session).find_active(registered.access_token)

        user = await service.current_user(token)
        fields = user.public_fields(with_created_at=True)

        assert set(fields) == {"id", "name", "email", "created_at"}
        assert fields["id"] == str(registered.user.id)
