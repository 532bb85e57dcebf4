"""Generic identity database context.

``IdentityDbContext`` is a scoped unit of work over one ``AsyncSession``.
It exposes one ``EntitySet`` per identity table and is bound to an
application's concrete user model by subclassing::

    class ApplicationDbContext(IdentityDbContext[ApplicationUser]):
        user_model = ApplicationUser

    async with ApplicationDbContext(options) as ctx:
        user = await ctx.users.first(normalized_user_name="ALICE")
        await ctx.save_changes()

Lifecycle: constructed (ready) -> disposed. The session, and the engine if
the context owns it, open lazily on first use. Every operation on a
disposed context raises ``UseAfterDisposeError``. A context must not be
shared between concurrently running operations.
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import TYPE_CHECKING, Any, ClassVar, Generic, Optional, TypeVar

from sqlalchemy import MetaData, event, inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from passage_identity.context.entity_set import EntitySet
from passage_identity.exceptions import ConfigurationError, UseAfterDisposeError
from passage_identity.options import (
    DbContextOptions,
    create_engine_from_options,
    describe_url,
    validate_options,
)
from passage_identity.persistence.sqlalchemy.base import IdentityBase
from passage_identity.persistence.sqlalchemy.models import (
    IdentityUserModel,
    RoleClaimModel,
    RoleModel,
    UserClaimModel,
    UserLoginModel,
    UserRoleModel,
    UserTokenModel,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import InstanceState, Session, UOWTransaction

logger = logging.getLogger(__name__)

TUser = TypeVar("TUser", bound=IdentityUserModel)


def check_user_model(user_model: Any, context_name: str) -> type[IdentityUserModel]:
    """Ensure a context is bound to a concrete, mapped user model.

    Returns the checked model.

    Raises
    ------
    ConfigurationError
        If the model is missing, is not an ``IdentityUserModel`` subclass,
        or is the abstract ``IdentityUserModel`` itself
    """
    if user_model is None:
        msg = f"{context_name} does not declare a user_model"
        raise ConfigurationError(msg)

    if not isinstance(user_model, type) or not issubclass(
        user_model,
        IdentityUserModel,
    ):
        msg = f"{context_name}.user_model must subclass IdentityUserModel"
        raise ConfigurationError(msg)

    if inspect(user_model, raiseerr=False) is None:
        msg = (
            f"{context_name}.user_model must be a concrete mapped subclass of "
            f"IdentityUserModel, got {user_model.__name__}"
        )
        raise ConfigurationError(msg)

    return user_model


class IdentityDbContext(Generic[TUser]):
    """Identity storage context bound to a user model."""

    user_model: ClassVar[Optional[type[IdentityUserModel]]] = None
    metadata: ClassVar[MetaData] = IdentityBase.metadata

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if cls.__dict__.get("user_model") is not None:
            check_user_model(cls.user_model, cls.__name__)

    def __init__(
        self,
        options: DbContextOptions,
        *,
        engine: Optional[AsyncEngine] = None,
    ) -> None:
        self._user_model = check_user_model(type(self).user_model, self.name)
        self._url = validate_options(options)
        self._options = options

        self._engine = engine
        self._owns_engine = engine is None
        self._session: Optional[AsyncSession] = None
        self._disposed = False
        self._written: set[InstanceState[Any]] = set()

        self._users: EntitySet[TUser] = EntitySet(self, self._user_model)  # type: ignore[arg-type]
        self._roles = EntitySet(self, RoleModel)
        self._user_roles = EntitySet(self, UserRoleModel)
        self._user_claims = EntitySet(self, UserClaimModel)
        self._role_claims = EntitySet(self, RoleClaimModel)
        self._user_logins = EntitySet(self, UserLoginModel)
        self._user_tokens = EntitySet(self, UserTokenModel)

    @property
    def name(self) -> str:
        return type(self).__name__

    @property
    def options(self) -> DbContextOptions:
        return self._options

    @property
    def database(self) -> str:
        """Connection URL with the password masked."""
        return describe_url(self._url)

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def ensure_not_disposed(self) -> None:
        if self._disposed:
            raise UseAfterDisposeError(self.name)

    # ------------------------------------------------------------------
    # Entity sets
    # ------------------------------------------------------------------

    @property
    def users(self) -> EntitySet[TUser]:
        self.ensure_not_disposed()
        return self._users

    @property
    def roles(self) -> EntitySet[RoleModel]:
        self.ensure_not_disposed()
        return self._roles

    @property
    def user_roles(self) -> EntitySet[UserRoleModel]:
        self.ensure_not_disposed()
        return self._user_roles

    @property
    def user_claims(self) -> EntitySet[UserClaimModel]:
        self.ensure_not_disposed()
        return self._user_claims

    @property
    def role_claims(self) -> EntitySet[RoleClaimModel]:
        self.ensure_not_disposed()
        return self._role_claims

    @property
    def user_logins(self) -> EntitySet[UserLoginModel]:
        self.ensure_not_disposed()
        return self._user_logins

    @property
    def user_tokens(self) -> EntitySet[UserTokenModel]:
        self.ensure_not_disposed()
        return self._user_tokens

    # ------------------------------------------------------------------
    # Connection and unit of work
    # ------------------------------------------------------------------

    @property
    def engine(self) -> AsyncEngine:
        self.ensure_not_disposed()
        if self._engine is None:
            self._engine = create_engine_from_options(self._options)
            logger.info("Created database engine for %s", self.database)
        return self._engine

    @property
    def session(self) -> AsyncSession:
        self.ensure_not_disposed()
        if self._session is None:
            self._session = AsyncSession(
                self.engine,
                expire_on_commit=self._options.expire_on_commit,
            )
            event.listen(self._session.sync_session, "after_flush", self._count_writes)
            logger.debug("Opened session for %s", self.name)
        return self._session

    async def save_changes(self) -> int:
        """Commit the unit of work.

        Returns
        -------
        Number of entity rows inserted, updated or deleted since the last
        commit or rollback
        """
        session = self.session
        await session.commit()
        written = len(self._written)
        self._written.clear()
        logger.debug("%s saved %d change(s)", self.name, written)
        return written

    async def rollback(self) -> None:
        """Discard all changes not yet saved."""
        self.ensure_not_disposed()
        if self._session is not None:
            await self._session.rollback()
        self._written.clear()

    def _count_writes(self, session: Session, _flush_context: UOWTransaction) -> None:
        # new/dirty/deleted still hold the pre-flush state here; a row written
        # by several flushes is counted once
        self._written.update(inspect(obj) for obj in session.new)
        self._written.update(inspect(obj) for obj in session.deleted)
        self._written.update(
            inspect(obj) for obj in session.dirty if session.is_modified(obj)
        )

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    async def ensure_created(self) -> bool:
        """Create all missing tables (idempotent).

        Existing tables and their data are never modified.

        Returns
        -------
        True if the user table did not exist before
        """
        self.ensure_not_disposed()
        user_table = self._user_table_name()

        async with self.engine.begin() as conn:
            existed = await conn.run_sync(
                lambda sync_conn: inspect(sync_conn).has_table(user_table),
            )
            await conn.run_sync(self.metadata.create_all)

        if existed:
            logger.debug("Identity schema already present")
        else:
            logger.info("Created identity schema")
        return not existed

    async def ensure_deleted(self) -> bool:
        """Drop all identity tables (USE WITH CAUTION!).

        Returns
        -------
        True if the user table existed before
        """
        self.ensure_not_disposed()
        user_table = self._user_table_name()

        if self._session is not None:
            await self._session.close()
        self._written.clear()

        logger.warning("Dropping identity schema")
        async with self.engine.begin() as conn:
            existed = await conn.run_sync(
                lambda sync_conn: inspect(sync_conn).has_table(user_table),
            )
            await conn.run_sync(self.metadata.drop_all)

        return existed

    async def can_connect(self) -> bool:
        """Check that the database is reachable."""
        self.ensure_not_disposed()
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (OSError, SQLAlchemyError) as e:
            logger.warning(
                "Database connectivity check failed for %s: %s",
                self.database,
                e,
            )
            return False
        return True

    def _user_table_name(self) -> str:
        return self._user_model.__table__.name

    # ------------------------------------------------------------------
    # Disposal
    # ------------------------------------------------------------------

    async def dispose(self) -> None:
        """Release the session and any owned engine. Idempotent."""
        if self._disposed:
            return
        self._disposed = True

        session, self._session = self._session, None
        engine, self._engine = self._engine, None
        try:
            if session is not None:
                await session.close()
        finally:
            if engine is not None and self._owns_engine:
                await engine.dispose()
        logger.debug("Disposed %s", self.name)

    async def __aenter__(self) -> IdentityDbContext[TUser]:
        self.ensure_not_disposed()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.dispose()

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else "ready"
        return f"<{self.name}({self.database}, {state})>"
