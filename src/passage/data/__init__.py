"""Application data layer: user entity and database context."""

from passage.data.application_db_context import (
    ApplicationDbContext,
    application_db_context_scope,
    build_db_context_options,
    create_application_db_context,
    get_db_context_factory,
)
from passage.data.application_user import ApplicationUser

__all__ = [
    "ApplicationDbContext",
    "ApplicationUser",
    "application_db_context_scope",
    "build_db_context_options",
    "create_application_db_context",
    "get_db_context_factory",
]
