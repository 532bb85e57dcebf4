"""
Integration tests for identity storage on PostgreSQL.

Runs the stores against a real PostgreSQL container to cover behaviour
SQLite does not exercise: timezone-aware timestamps, UUID columns and
the unique index on normalized user names.

Run with: pytest --run-integration
"""

from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from passage.data import ApplicationDbContext, ApplicationUser
from passage_identity import Claim, DbContextOptions, RoleStore, UserStore
from passage_identity.time import utc_now
from tests.shared.fixtures.factories import TestRoleFactory, TestUserFactory

pytestmark = pytest.mark.integration


class TestPostgresStores:
    """Store round trips on PostgreSQL."""

    @pytest.mark.asyncio
    async def test_ensure_created_is_idempotent(self, pg_context):
        assert await pg_context.ensure_created() is False
        assert await pg_context.can_connect() is True

    @pytest.mark.asyncio
    async def test_user_with_roles_and_claims(self, pg_context):
        users = UserStore(pg_context)
        roles = RoleStore(pg_context)

        alice = await users.create(TestUserFactory.alice())
        await roles.create(TestRoleFactory.admin())
        await users.add_to_role(alice, "admin")
        await users.add_claims(alice, [Claim("department", "sales")])
        written = await pg_context.save_changes()

        assert written == 4
        assert await users.get_roles(alice) == ["Admin"]
        assert await users.get_users_for_claim(Claim("department", "sales")) == [
            alice,
        ]

    @pytest.mark.asyncio
    async def test_lockout_end_keeps_timezone(self, pg_context, postgres_url):
        users = UserStore(pg_context)
        alice = await users.create(TestUserFactory.alice())
        lockout_end = utc_now() + timedelta(minutes=5)
        await users.set_lockout_end(alice, lockout_end)
        await pg_context.save_changes()

        async with ApplicationDbContext(
            DbContextOptions.from_url(postgres_url),
        ) as other:
            reloaded = await other.users.get(alice.id)

        assert reloaded is not None
        assert reloaded.lockout_end == lockout_end
        assert reloaded.lockout_end.tzinfo is not None

    @pytest.mark.asyncio
    async def test_unique_normalized_user_name_is_enforced(self, pg_context):
        """The database rejects duplicates that bypass the store check."""
        pg_context.users.add(ApplicationUser(user_name="x", normalized_user_name="X"))
        pg_context.users.add(ApplicationUser(user_name="x", normalized_user_name="X"))

        with pytest.raises(IntegrityError):
            await pg_context.save_changes()

    @pytest.mark.asyncio
    async def test_concurrent_update_conflict(self, pg_context, postgres_url):
        users = UserStore(pg_context)
        await users.create(TestUserFactory.alice())
        await pg_context.save_changes()

        async with ApplicationDbContext(
            DbContextOptions.from_url(postgres_url),
        ) as other:
            theirs = await other.users.get(TestUserFactory.ALICE_ID)

            mine = await users.find_by_name("alice")
            mine.email = "mine@example.com"
            await pg_context.save_changes()

            theirs.email = "theirs@example.com"
            with pytest.raises(StaleDataError):
                await other.save_changes()
