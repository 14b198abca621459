"""
Stores wrapping the ORM. All queries are issued from here.

``UserStore`` holds credentials, ``TokenStore`` issues, resolves and revokes
personal access tokens.  Neither commits; the caller owns the transaction.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from auth.tokens import format_token, generate_secret, hash_secret, parse_token, secret_matches
from config.settings import config
from database.models import PersonalAccessToken, User, utcnow

logger = logging.getLogger(__name__)


@dataclass
class NewAccessToken:
    token: PersonalAccessToken
    plain_text: str


class UserStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_by_email(self, email: str, *, for_update: bool = False) -> Optional[User]:
        stmt = select(User).where(User.email == email.strip().lower())
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get(self, user_id: uuid.UUID) -> Optional[User]:
        return await self._session.get(User, user_id)

    async def create(self, *, name: str, email: str, password_hash: str) -> User:
        """Insert a user; a duplicate email surfaces as ``IntegrityError`` on flush."""
        user = User(
            id=uuid.uuid4(),
            name=name,
            email=email.strip().lower(),
            password_hash=password_hash,
        )
        self._session.add(user)
        await self._session.flush()
        return user

    async def count(self) -> int:
        result = await self._session.execute(select(func.count()).select_from(User))
        return result.scalar_one()


class TokenStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def issue(self, user: User, name: str | None = None) -> NewAccessToken:
        """Persist a new token for ``user`` and return it with its plaintext."""
        secret = generate_secret()
        now = utcnow()
        expires_at = None
        if config.token_expiry_minutes:
            expires_at = now + timedelta(minutes=config.token_expiry_minutes)

        token = PersonalAccessToken(
            user_id=user.id,
            name=name or config.token_name,
            token_hash=hash_secret(secret),
            revoked=False,
            expires_at=expires_at,
            created_at=now,
        )
        self._session.add(token)
        await self._session.flush()
        return NewAccessToken(token=token, plain_text=format_token(token.id, secret))

    async def find_active(self, plain_text: str) -> Optional[PersonalAccessToken]:
        """Resolve a presented token to its row, or ``None`` if unusable."""
        parsed = parse_token(plain_text)
        if parsed is None:
            return None
        token_id, secret = parsed

        result = await self._session.execute(
            select(PersonalAccessToken)
            .options(joinedload(PersonalAccessToken.user))
            .where(PersonalAccessToken.id == token_id)
            # bulk revocations bypass the identity map; always read the row fresh
            .execution_options(populate_existing=True)
        )
        token = result.scalar_one_or_none()
        if token is None or not secret_matches(secret, token.token_hash):
            return None
        if not token.is_active():
            logger.debug("Rejected inactive token %s", token.id)
            return None
        return token

    async def touch(self, token: PersonalAccessToken) -> None:
        token.last_used_at = utcnow()
        await self._session.flush()

    async def revoke(self, token: PersonalAccessToken) -> bool:
        """Revoke one token. Returns ``False`` if it was already revoked."""
        result = await self._session.execute(
            update(PersonalAccessToken)
            .where(
                PersonalAccessToken.id == token.id,
                PersonalAccessToken.revoked.is_(False),
            )
            .values(revoked=True, revoked_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def revoke_all_for_user(self, user_id: uuid.UUID) -> int:
        result = await self._session.execute(
            update(PersonalAccessToken)
            .where(
                PersonalAccessToken.user_id == user_id,
                PersonalAccessToken.revoked.is_(False),
            )
            .values(revoked=True, revoked_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def count_active(self, user_id: uuid.UUID) -> int:
        result = await self._session.execute(
            select(func.count())
            .select_from(PersonalAccessToken)
            .where(
                PersonalAccessToken.user_id == user_id,
                PersonalAccessToken.revoked.is_(False),
                or_(
                    PersonalAccessToken.expires_at.is_(None),
                    PersonalAccessToken.expires_at > utcnow(),
                ),
            )
        )
        return result.scalar_one()
