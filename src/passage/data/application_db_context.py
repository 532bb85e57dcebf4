"""Application database context.

Binds ``ApplicationUser`` to the identity storage context. Schema, entity
sets, queries and unit-of-work behaviour all come from
``passage_identity.IdentityDbContext``; only the user type and the way
options are obtained from settings are decided here.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Optional

from passage.data.application_user import ApplicationUser
from passage_config.settings import Settings, get_settings
from passage_identity import DbContextFactory, DbContextOptions, IdentityDbContext
from passage_identity.options import ConnectionOptions

logger = logging.getLogger(__name__)


class ApplicationDbContext(IdentityDbContext[ApplicationUser]):
    """Identity database context for ``ApplicationUser``."""

    user_model = ApplicationUser


def build_db_context_options(settings: Settings) -> DbContextOptions:
    """Map application settings onto context options.

    A missing connection string is passed through; the context rejects it
    with ``ConfigurationError`` on construction.
    """
    return DbContextOptions(
        connection_options=ConnectionOptions(
            url=settings.connection_string,
            echo=settings.database_echo,
            pool_pre_ping=settings.database_pool_pre_ping,
        ),
    )


def create_application_db_context(
    settings: Optional[Settings] = None,
) -> ApplicationDbContext:
    """Create a standalone context that owns its engine."""
    settings = settings or get_settings()
    return ApplicationDbContext(build_db_context_options(settings))


@lru_cache(maxsize=1)
def get_db_context_factory() -> DbContextFactory[ApplicationDbContext]:
    """Get the shared context factory (singleton).

    The factory's engine manages the connection pool and is reused by all
    contexts it creates.
    """
    settings = get_settings()
    logger.debug("Creating database context factory")
    return DbContextFactory(ApplicationDbContext, build_db_context_options(settings))


@asynccontextmanager
async def application_db_context_scope() -> AsyncIterator[ApplicationDbContext]:
    """Provide a context for one logical operation.

    The context is disposed on every exit path. Changes must be saved
    explicitly with ``save_changes()``.
    """
    async with get_db_context_factory().scope() as context:
        yield context
