from __future__ import annotations

from collections.abc import AsyncIterator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from services.api.app.settings import SETTINGS


def to_async_url(url: str) -> str:
    """Accept the seeder's sync URLs too; the API always talks asyncpg."""
    parsed = make_url(url)
    if parsed.get_backend_name() == "postgresql" and parsed.get_driver_name() != "asyncpg":
        parsed = parsed.set(drivername="postgresql+asyncpg")
    return parsed.render_as_string(hide_password=False)


def create_engine(url: str | None = None) -> AsyncEngine:
    # NullPool: pooled asyncpg connections are bound to the loop that opened them.
    return create_async_engine(
        to_async_url(url or SETTINGS.database_url),
        pool_pre_ping=True,
        poolclass=NullPool,
        connect_args={"server_settings": {"application_name": "taskpilot-api"}},
    )


ENGINE = create_engine()
SESSIONMAKER = async_sessionmaker(ENGINE, expire_on_commit=False, class_=AsyncSession)


async def get_session() -> AsyncIterator[AsyncSession]:
    async with SESSIONMAKER() as session:
        yield session
