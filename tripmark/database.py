"""Async database session and engine configuration."""

from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from tripmark.config import settings

Base = declarative_base()

# Async engine for PostgreSQL (default) or provided DATABASE_URL
engine = create_async_engine(
    settings.database_url,
    echo=False,
    future=True,
)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    """Session factory for an engine; stores open one session per operation."""
    return async_sessionmaker(
        bind=bind,
        expire_on_commit=False,
        class_=AsyncSession,
    )


# Session factory
AsyncSessionLocal = build_session_factory(engine)


async def init_models(bind: Optional[AsyncEngine] = None) -> None:
    """Create extensions and tables if they do not exist yet."""
    from tripmark import tables  # noqa: F401

    bind = bind or engine
    async with bind.begin() as conn:
        if bind.dialect.name == "postgresql":
            await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
            await conn.execute(text("CREATE EXTENSION IF NOT EXISTS pg_trgm"))
        await conn.run_sync(Base.metadata.create_all)
