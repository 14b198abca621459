"""
Auth service — register, login, logout, current user.

Each operation runs inside one ``AsyncSession`` transaction and commits it
itself.  Anything that is not an ``AuthError`` is logged, rolled back and
converted to the operation's failure error at the boundary.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from auth.exceptions import (
    AuthError,
    InternalError,
    InvalidCredentialsError,
    RevocationError,
    UnauthorizedError,
    ValidationError,
)
from auth.password import dummy_hash, hash_password, verify_password
from auth.schemas import LoginRequest, RegisterRequest
from config.settings import config
from database.models import PersonalAccessToken, User
from database.repositories import TokenStore, UserStore

logger = logging.getLogger(__name__)

EMAIL_TAKEN_MESSAGE = "The email has already been taken."

T = TypeVar("T")


@dataclass
class AuthResult:
    user: User
    access_token: str


def _boundary(on_failure: Callable[[Exception], AuthError]):
    """Convert unexpected exceptions raised by an operation into ``on_failure(exc)``."""

    def decorator(fn: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(fn)
        async def wrapper(self: "AuthService", *args: Any, **kwargs: Any) -> T:
            try:
                return await fn(self, *args, **kwargs)
            except AuthError:
                raise
            except Exception as exc:
                logger.exception("%s failed", fn.__name__)
                await self._session.rollback()
                raise on_failure(exc) from exc

        return wrapper

    return decorator


class AuthService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._users = UserStore(session)
        self._tokens = TokenStore(session)

    @_boundary(lambda exc: InternalError("Registration failed due to a server error.", exc))
    async def register(self, req: RegisterRequest) -> AuthResult:
        """Create a user and hand back its first token."""
        if await self._users.find_by_email(req.email) is not None:
            raise ValidationError({"email": [EMAIL_TAKEN_MESSAGE]})

        try:
            user = await self._users.create(
                name=req.name,
                email=req.email,
                password_hash=hash_password(req.password),
            )
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email.
            await self._session.rollback()
            raise ValidationError({"email": [EMAIL_TAKEN_MESSAGE]})

        issued = await self._tokens.issue(user, config.token_name)
        await self._session.commit()

        logger.info("Registered user %s (%s)", user.email, user.id)
        return AuthResult(user=user, access_token=issued.plain_text)

    @_boundary(lambda exc: InternalError("Login failed due to a server error.", exc))
    async def login(self, req: LoginRequest) -> AuthResult:
        """
        Check credentials, then replace every token the user holds with a
        single new one in the same transaction.
        """
        user = await self._users.find_by_email(req.email, for_update=True)
        if user is None:
            verify_password(req.password, dummy_hash())
            raise InvalidCredentialsError()
        if not verify_password(req.password, user.password_hash):
            raise InvalidCredentialsError()

        revoked = await self._tokens.revoke_all_for_user(user.id)
        issued = await self._tokens.issue(user, config.token_name)
        await self._session.commit()

        logger.info("Login: %s (%s), revoked %d previous token(s)", user.email, user.id, revoked)
        return AuthResult(user=user, access_token=issued.plain_text)

    @_boundary(lambda exc: RevocationError())
    async def logout(self, token: PersonalAccessToken) -> None:
        """Revoke only the token used for this request."""
        if not await self._tokens.revoke(token):
            raise RevocationError()
        await self._session.commit()
        logger.info("Logout: revoked token %s of user %s", token.id, token.user_id)

    @_boundary(lambda exc: InternalError("Could not load the current user.", exc))
    async def current_user(self, token: PersonalAccessToken) -> User:
        user = await self._users.get(token.user_id)
        if user is None:
            raise UnauthorizedError()
        return user
