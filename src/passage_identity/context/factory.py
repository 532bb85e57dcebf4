"""Factory handing out scoped contexts that share one engine."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Generic, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncEngine

from passage_identity.context.db_context import IdentityDbContext, check_user_model
from passage_identity.options import (
    DbContextOptions,
    create_engine_from_options,
    describe_url,
    validate_options,
)

logger = logging.getLogger(__name__)

TContext = TypeVar("TContext", bound=IdentityDbContext)


class DbContextFactory(Generic[TContext]):
    """Creates one context per logical operation over a shared engine.

    The engine (and its connection pool) is created on first use and lives
    until ``dispose()``. Contexts created here borrow it and never dispose it.
    """

    def __init__(
        self,
        context_type: type[TContext],
        options: DbContextOptions,
    ) -> None:
        check_user_model(context_type.user_model, context_type.__name__)
        self._url = validate_options(options)
        self._context_type = context_type
        self._options = options
        self._engine: Optional[AsyncEngine] = None

    @property
    def context_type(self) -> type[TContext]:
        return self._context_type

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._engine = create_engine_from_options(self._options)
            logger.info(
                "Created shared database engine for %s",
                describe_url(self._url),
            )
        return self._engine

    def create(self) -> TContext:
        """Create a new context. The caller must dispose it."""
        return self._context_type(self._options, engine=self.engine)

    @asynccontextmanager
    async def scope(self) -> AsyncIterator[TContext]:
        """Provide a context for one operation and dispose it afterwards."""
        context = self.create()
        try:
            yield context
        finally:
            await context.dispose()

    async def dispose(self) -> None:
        """Dispose the shared engine. Idempotent."""
        engine, self._engine = self._engine, None
        if engine is not None:
            await engine.dispose()
            logger.info("Disposed shared database engine")
