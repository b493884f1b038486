"""Async engine, session factory and schema helpers for the calls store."""
from __future__ import annotations

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from ..core.config import Settings, settings
from ..models.base import Base


def build_engine(config: Settings) -> AsyncEngine:
    """Create the async engine described by ``config``."""

    connect_args: dict[str, object] = {}
    if config.database_ssl_required:
        connect_args["ssl"] = True

    return create_async_engine(
        config.database_async_url,
        echo=False,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


engine = build_engine(settings)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency to provide an async session."""

    async with SessionLocal() as session:
        yield session


async def create_schema(target: AsyncEngine | None = None) -> None:
    """Create the ``calls`` table if it does not exist yet."""

    from .. import models  # noqa: F401 - register mappers on Base.metadata

    async with (target or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
