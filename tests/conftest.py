"""
Pytest configuration and fixtures for testing
"""
import asyncio
import os

# Settings are read at import time
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-for-the-suite")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_petcare.db")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import NullPool

from database import get_db, init_db, make_engine, make_session_factory


def _make_engine(tmp_path):
    # A file per test; NullPool keeps connections off any one event loop
    return make_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)


@pytest.fixture
async def test_db(tmp_path):
    """
    Fixture that provides an isolated SQLite database session for each test.

    Tables are created before the test and the file is discarded afterwards.
    """
    engine = _make_engine(tmp_path)
    await init_db(engine)

    session_factory = make_session_factory(engine)
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    await engine.dispose()


@pytest.fixture
def session_factory(tmp_path):
    """Session factory over a fresh database, for tests driving the app synchronously."""
    engine = _make_engine(tmp_path)

    asyncio.run(init_db(engine))
    yield make_session_factory(engine)
    asyncio.run(engine.dispose())


@pytest.fixture
def run_db(session_factory):
    """
    Run `func(session)` against the test database and return its result.

    Lets synchronous tests seed and inspect rows around TestClient calls.
    """
    def _run(func):
        async def _inner():
            async with session_factory() as session:
                result = await func(session)
                await session.commit()
                return result
        return asyncio.run(_inner())
    return _run


@pytest.fixture
def client(session_factory):
    """FastAPI TestClient fixture with test database override"""
    from main import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
