"""Unit tests for IdentityDbContext lifecycle, binding and schema helpers."""

from unittest.mock import patch

import pytest
from sqlalchemy import inspect

from passage.data import ApplicationDbContext, ApplicationUser
from passage_identity import (
    ConfigurationError,
    DbContextOptions,
    IdentityDbContext,
    IdentityUserModel,
    RoleModel,
    RoleStore,
    UseAfterDisposeError,
    UserStore,
)
from tests.shared.fixtures.factories import TestRoleFactory, TestUserFactory


class TestUserModelBinding:
    """Tests for binding a context to a concrete user model."""

    def test_users_set_is_typed_to_bound_model(self, context_options):
        ctx = ApplicationDbContext(context_options)

        assert ctx.users.entity_type is ApplicationUser
        assert ctx.users.entity_type is not IdentityUserModel

    def test_unbound_context_is_rejected(self, context_options):
        with pytest.raises(ConfigurationError, match="does not declare a user_model"):
            IdentityDbContext(context_options)

    def test_abstract_user_model_is_rejected(self):
        with pytest.raises(ConfigurationError, match="concrete mapped subclass"):

            class AbstractUserContext(IdentityDbContext[IdentityUserModel]):
                user_model = IdentityUserModel

    def test_unrelated_model_is_rejected(self):
        with pytest.raises(ConfigurationError, match="must subclass IdentityUserModel"):

            class RoleContext(IdentityDbContext):  # type: ignore[type-arg]
                user_model = RoleModel  # type: ignore[assignment]

    def test_other_entity_sets_use_identity_models(self, context_options):
        ctx = ApplicationDbContext(context_options)

        assert ctx.roles.entity_type is RoleModel
        assert {
            ctx.user_roles.entity_type.__tablename__,
            ctx.user_claims.entity_type.__tablename__,
            ctx.role_claims.entity_type.__tablename__,
            ctx.user_logins.entity_type.__tablename__,
            ctx.user_tokens.entity_type.__tablename__,
        } == {"user_roles", "user_claims", "role_claims", "user_logins", "user_tokens"}


class TestConstruction:
    """Tests for option validation at construction time."""

    def test_missing_url_raises_before_any_engine_exists(self):
        with patch("passage_identity.options.create_async_engine") as create_engine:
            with pytest.raises(ConfigurationError):
                ApplicationDbContext(DbContextOptions.from_url(None))

        create_engine.assert_not_called()

    def test_missing_options_raise(self):
        with pytest.raises(ConfigurationError):
            ApplicationDbContext(None)

    def test_engine_is_created_lazily(self, context_options):
        with patch("passage_identity.options.create_async_engine") as create_engine:
            ctx = ApplicationDbContext(context_options)

            create_engine.assert_not_called()
            assert ctx.engine is create_engine.return_value
            create_engine.assert_called_once()

    def test_repr_masks_password(self):
        ctx = ApplicationDbContext(
            DbContextOptions.from_url("postgresql+asyncpg://app:hunter2@db/passage"),
        )

        assert "hunter2" not in repr(ctx)
        assert "ready" in repr(ctx)


class TestDisposal:
    """Tests for the ready -> disposed lifecycle."""

    @pytest.mark.asyncio
    async def test_dispose_is_idempotent(self, context_options):
        ctx = ApplicationDbContext(context_options)
        await ctx.ensure_created()

        await ctx.dispose()
        await ctx.dispose()

        assert ctx.is_disposed
        assert "disposed" in repr(ctx)

    @pytest.mark.asyncio
    async def test_dispose_without_use_is_fine(self, context_options):
        ctx = ApplicationDbContext(context_options)

        await ctx.dispose()

        assert ctx.is_disposed

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "entity_set",
        [
            "users",
            "roles",
            "user_roles",
            "user_claims",
            "role_claims",
            "user_logins",
            "user_tokens",
        ],
    )
    async def test_entity_sets_unavailable_after_dispose(
        self,
        context_options,
        entity_set,
    ):
        ctx = ApplicationDbContext(context_options)
        await ctx.dispose()

        with pytest.raises(UseAfterDisposeError, match="ApplicationDbContext"):
            getattr(ctx, entity_set)

    @pytest.mark.asyncio
    async def test_operations_fail_after_dispose(self, context_options):
        ctx = ApplicationDbContext(context_options)
        await ctx.ensure_created()
        await ctx.dispose()

        with pytest.raises(UseAfterDisposeError):
            await ctx.save_changes()
        with pytest.raises(UseAfterDisposeError):
            await ctx.rollback()
        with pytest.raises(UseAfterDisposeError):
            await ctx.ensure_created()
        with pytest.raises(UseAfterDisposeError):
            await ctx.ensure_deleted()
        with pytest.raises(UseAfterDisposeError):
            await ctx.can_connect()
        with pytest.raises(UseAfterDisposeError):
            ctx.session  # noqa: B018
        with pytest.raises(UseAfterDisposeError):
            ctx.engine  # noqa: B018

    @pytest.mark.asyncio
    async def test_held_entity_set_fails_after_dispose(self, context_options):
        """An EntitySet obtained before disposal cannot outlive its context."""
        ctx = ApplicationDbContext(context_options)
        await ctx.ensure_created()
        users = ctx.users
        await ctx.dispose()

        with pytest.raises(UseAfterDisposeError):
            await users.find()
        with pytest.raises(UseAfterDisposeError):
            users.add(TestUserFactory.alice())

    @pytest.mark.asyncio
    async def test_async_with_disposes(self, context_options):
        async with ApplicationDbContext(context_options) as ctx:
            await ctx.ensure_created()

        assert ctx.is_disposed

    @pytest.mark.asyncio
    async def test_async_with_disposes_on_error(self, context_options):
        with pytest.raises(RuntimeError):
            async with ApplicationDbContext(context_options) as ctx:
                await ctx.ensure_created()
                raise RuntimeError("boom")

        assert ctx.is_disposed

    @pytest.mark.asyncio
    async def test_borrowed_engine_is_not_disposed(self, context_options):
        owner = ApplicationDbContext(context_options)
        await owner.ensure_created()

        borrower = ApplicationDbContext(context_options, engine=owner.engine)
        assert await borrower.users.count() == 0
        await borrower.dispose()

        # The owner's engine is still usable
        assert await owner.can_connect() is True
        await owner.dispose()


class TestSchema:
    """Tests for ensure_created / ensure_deleted."""

    @pytest.mark.asyncio
    async def test_ensure_created_reports_first_creation(self, context_options):
        async with ApplicationDbContext(context_options) as ctx:
            assert await ctx.ensure_created() is True
            assert await ctx.ensure_created() is False

    @pytest.mark.asyncio
    async def test_ensure_created_creates_all_identity_tables(self, context_options):
        async with ApplicationDbContext(context_options) as ctx:
            await ctx.ensure_created()
            async with ctx.engine.connect() as conn:
                tables = await conn.run_sync(
                    lambda sync_conn: set(inspect(sync_conn).get_table_names()),
                )

        assert {
            "users",
            "roles",
            "user_roles",
            "user_claims",
            "role_claims",
            "user_logins",
            "user_tokens",
        } <= tables

    @pytest.mark.asyncio
    async def test_ensure_created_keeps_existing_data(self, db_context):
        db_context.users.add(TestUserFactory.alice())
        await db_context.save_changes()

        assert await db_context.ensure_created() is False
        assert await db_context.users.count() == 1

    @pytest.mark.asyncio
    async def test_ensure_deleted_reports_whether_schema_existed(self, db_context):
        assert await db_context.ensure_deleted() is True
        assert await db_context.ensure_deleted() is False

    @pytest.mark.asyncio
    async def test_schema_can_be_recreated_after_delete(self, db_context):
        db_context.users.add(TestUserFactory.alice())
        await db_context.save_changes()

        await db_context.ensure_deleted()
        assert await db_context.ensure_created() is True
        assert await db_context.users.count() == 0


class TestUnitOfWork:
    """Tests for save_changes / rollback."""

    @pytest.mark.asyncio
    async def test_save_changes_counts_each_row_once(self, db_context):
        """Store calls flush after every write; the row still counts once."""
        store = UserStore(db_context)
        alice = await store.create(TestUserFactory.alice())
        await store.set_password_hash(alice, "hash")
        await store.increment_access_failed_count(alice)

        assert await db_context.save_changes() == 1

        await store.set_password_hash(alice, "other-hash")
        await store.reset_access_failed_count(alice)

        assert await db_context.save_changes() == 1

    @pytest.mark.asyncio
    async def test_save_changes_counts_rows_across_store_calls(self, db_context):
        users = UserStore(db_context)
        roles = RoleStore(db_context)
        alice = await users.create(TestUserFactory.alice())
        await roles.create(TestRoleFactory.admin())
        await users.add_to_role(alice, "Admin")
        await users.set_token(alice, "github", "access_token", "a-1")
        await users.set_token(alice, "github", "access_token", "a-2")

        # user, role, membership, token
        assert await db_context.save_changes() == 4

    @pytest.mark.asyncio
    async def test_ensure_deleted_discards_pending_count(self, db_context):
        await UserStore(db_context).create(TestUserFactory.alice())

        await db_context.ensure_deleted()
        await db_context.ensure_created()

        assert await db_context.save_changes() == 0

    @pytest.mark.asyncio
    async def test_save_changes_returns_written_rows(self, db_context):
        db_context.users.add(TestUserFactory.alice())
        db_context.roles.add(TestRoleFactory.admin())

        assert await db_context.save_changes() == 2
        assert await db_context.save_changes() == 0

    @pytest.mark.asyncio
    async def test_save_changes_counts_updates_and_deletes(self, db_context):
        alice = TestUserFactory.alice()
        bob = TestUserFactory.bob()
        db_context.users.add_all([alice, bob])
        await db_context.save_changes()

        alice.phone_number = "+49 30 1234567"
        await db_context.users.remove(bob)

        assert await db_context.save_changes() == 2

    @pytest.mark.asyncio
    async def test_changes_visible_to_other_context_only_after_save(
        self,
        db_context,
        second_db_context,
    ):
        db_context.users.add(TestUserFactory.alice())
        await db_context.session.flush()

        assert await second_db_context.users.get(TestUserFactory.ALICE_ID) is None

        await db_context.save_changes()

        loaded = await second_db_context.users.get(TestUserFactory.ALICE_ID)
        assert loaded is not None
        assert loaded.user_name == TestUserFactory.ALICE_NAME

    @pytest.mark.asyncio
    async def test_rollback_discards_pending_changes(self, db_context):
        db_context.users.add(TestUserFactory.alice())
        await db_context.session.flush()

        await db_context.rollback()

        assert await db_context.users.count() == 0
        assert await db_context.save_changes() == 0


class TestCanConnect:
    """Tests for the connectivity probe."""

    @pytest.mark.asyncio
    async def test_reachable_database(self, context_options):
        async with ApplicationDbContext(context_options) as ctx:
            assert await ctx.can_connect() is True

    @pytest.mark.asyncio
    async def test_unreachable_database(self, tmp_path):
        missing_dir = tmp_path / "does-not-exist"
        options = DbContextOptions.from_url(
            f"sqlite+aiosqlite:///{missing_dir / 'passage.db'}",
        )

        async with ApplicationDbContext(options) as ctx:
            assert await ctx.can_connect() is False
