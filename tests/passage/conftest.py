"""Pytest configuration for application layer tests."""

import pytest
import pytest_asyncio

from passage.data import get_db_context_factory
from tests.shared.fixtures.database import context_options, db_context, sqlite_url

__all__ = ["context_options", "db_context", "sqlite_url"]


@pytest_asyncio.fixture
async def app_env(monkeypatch, sqlite_url):
    """Point the application settings at a fresh SQLite database.

    Disposes the shared context factory's engine afterwards.
    """
    monkeypatch.setenv("DATABASE_URL", sqlite_url)
    monkeypatch.delenv("POSTGRES_PASSWORD", raising=False)
    get_db_context_factory.cache_clear()

    yield sqlite_url

    if get_db_context_factory.cache_info().currsize:
        await get_db_context_factory().dispose()
    get_db_context_factory.cache_clear()


@pytest.fixture
def cli_env(monkeypatch, sqlite_url):
    """Settings for CLI runs, which manage their own event loops."""
    monkeypatch.setenv("DATABASE_URL", sqlite_url)
    monkeypatch.delenv("POSTGRES_PASSWORD", raising=False)
    return sqlite_url


@pytest.fixture
def no_database_env(monkeypatch):
    """Remove every source of a connection string."""
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("POSTGRES_PASSWORD", raising=False)
    monkeypatch.delenv("PASSAGE_ENV_FILE", raising=False)
