"""
FastAPI dependencies for authentication.

Provides ``db_session`` and the ``require_user`` gate that every protected
route depends on.  The gate runs before the handler, rejects the request with
401 when the bearer token is missing or unusable, and hands the resolved
``AuthContext`` to the handler (also stored on ``request.state.auth``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncGenerator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from auth.exceptions import UnauthorizedError
from database.models import PersonalAccessToken, User
from database.repositories import TokenStore
from database.session import get_db_session

_bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class AuthContext:
    user: User
    token: PersonalAccessToken


async def db_session(
    session: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a DB session for route handlers."""
    yield session


async def require_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    session: AsyncSession = Depends(db_session),
) -> AuthContext:
    """Resolve the ``Authorization: Bearer`` token to its user."""
    if credentials is None:
        raise UnauthorizedError()

    tokens = TokenStore(session)
    token = await tokens.find_active(credentials.credentials)
    if token is None:
        raise UnauthorizedError()

    await tokens.touch(token)
    await session.commit()

    ctx = AuthContext(user=token.user, token=token)
    request.state.auth = ctx
    return ctx
