"""Database context, entity sets and the scoped context factory."""

from passage_identity.context.db_context import IdentityDbContext, check_user_model
from passage_identity.context.entity_set import EntitySet
from passage_identity.context.factory import DbContextFactory

__all__ = [
    "DbContextFactory",
    "EntitySet",
    "IdentityDbContext",
    "check_user_model",
]
