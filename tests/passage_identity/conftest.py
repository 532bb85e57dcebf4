"""
Pytest configuration for passage_identity tests.

Re-exports the shared database fixtures and adds store fixtures.
"""

import pytest

from passage_identity import RoleStore, UserStore
from tests.shared.fixtures.database import (
    context_options,
    db_context,
    pg_context,
    postgres_container,
    postgres_url,
    second_db_context,
    sqlite_url,
)

__all__ = [
    "context_options",
    "db_context",
    "pg_context",
    "postgres_container",
    "postgres_url",
    "second_db_context",
    "sqlite_url",
]


@pytest.fixture
def user_store(db_context) -> UserStore:
    return UserStore(db_context)


@pytest.fixture
def role_store(db_context) -> RoleStore:
    return RoleStore(db_context)
