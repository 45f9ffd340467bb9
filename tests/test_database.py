"""
Tests for database URL handling
"""
import pytest

from database import async_database_url, check_production_url


def test_postgres_url_uses_async_driver():
    assert async_database_url("postgresql://u:p@db:5432/app") == "postgresql+asyncpg://u:p@db:5432/app"


def test_other_urls_pass_through():
    assert async_database_url("sqlite+aiosqlite:///./petcare.db") == "sqlite+aiosqlite:///./petcare.db"
    assert async_database_url("postgresql+asyncpg://db/app") == "postgresql+asyncpg://db/app"


def test_sqlite_is_refused_in_production():
    with pytest.raises(RuntimeError, match="PostgreSQL"):
        check_production_url("sqlite+aiosqlite:///./petcare.db")
    check_production_url("postgresql://db/app")
