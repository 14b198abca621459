"""
Async SQLAlchemy session factory.

PostgreSQL (asyncpg) gets a sized connection pool; SQLite (aiosqlite) runs
without pooling so connections never outlive the event loop that opened them.
"""

from __future__ import annotations

from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from config.settings import config
from database.models import Base


def _engine_options() -> Dict[str, Any]:
    if config.is_sqlite:
        return {"poolclass": NullPool}
    return {"pool_size": 10, "max_overflow": 20, "pool_recycle": 3600}


engine = create_async_engine(
    config.database_url,
    echo=config.database_echo,
    **_engine_options(),
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency function — use in FastAPI `Depends(get_db_session)`."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_models() -> None:
    """Create all tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_models() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
