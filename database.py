"""
Async engine and session wiring for the accounts database
"""
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from config.settings import settings, IS_PRODUCTION

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./petcare.db"

Base = declarative_base()


def async_database_url(url: str) -> str:
    """Point plain postgresql:// URLs at the asyncpg driver; others pass through."""
    if url.startswith("postgresql://"):
        return "postgresql+asyncpg://" + url[len("postgresql://"):]
    return url


def check_production_url(url: str) -> None:
    if "sqlite" in url.lower():
        raise RuntimeError("SQLite cannot hold account state in production. Set a PostgreSQL DATABASE_URL.")


def make_engine(url: str, **engine_kwargs) -> AsyncEngine:
    return create_async_engine(async_database_url(url), echo=False, future=True, **engine_kwargs)


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    # Objects stay readable after commit; the reconciler commits mid-request
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


if IS_PRODUCTION:
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL must be set in production.")
    check_production_url(settings.database_url)

engine = make_engine(settings.database_url or DEFAULT_DATABASE_URL)
AsyncSessionLocal = make_session_factory(engine)


async def init_db(bind: Optional[AsyncEngine] = None):
    """Create the users table if it does not exist yet."""
    from database_models import User  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session: committed when the handler returns, rolled back
    if it raises.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
