"""Passage Identity - reusable identity storage.

This package provides the identity schema and its persistence layer,
independent of any specific application:
- Users (abstract model applications subclass), roles, memberships
- User and role claims, external logins, stored tokens
- A scoped database context exposing one entity set per table
- Stores implementing account/role/claim/login/token operations

Architecture:
    passage_identity/
    ├── persistence/sqlalchemy/   # Declarative base and models
    ├── context/                  # IdentityDbContext, EntitySet, factory
    ├── stores/                   # UserStore, RoleStore
    ├── options.py                # Construction options
    ├── schemas.py                # Value types (Claim, UserLoginInfo)
    └── exceptions.py             # Identity storage exceptions

Credential hashing and token issuance are not part of this package; it
only stores what it is given.

Usage:
    from passage_identity import IdentityDbContext, IdentityUserModel

    class AppUser(IdentityUserModel):
        pass

    class AppDbContext(IdentityDbContext[AppUser]):
        user_model = AppUser
"""

from passage_identity.context import (
    DbContextFactory,
    EntitySet,
    IdentityDbContext,
)
from passage_identity.exceptions import (
    ConfigurationError,
    DuplicateLoginError,
    DuplicateRoleNameError,
    DuplicateUserNameError,
    IdentityError,
    RoleNotFoundError,
    UseAfterDisposeError,
)
from passage_identity.normalization import normalize_lookup_key
from passage_identity.options import (
    ConnectionOptions,
    DbContextOptions,
    validate_options,
)
from passage_identity.persistence.sqlalchemy import (
    IdentityBase,
    IdentityUserModel,
    RoleClaimModel,
    RoleModel,
    UserClaimModel,
    UserLoginModel,
    UserRoleModel,
    UserTokenModel,
)
from passage_identity.schemas import Claim, UserLoginInfo
from passage_identity.stores import RoleStore, UserStore

__all__ = [
    # Context
    "DbContextFactory",
    "EntitySet",
    "IdentityDbContext",
    # Options
    "ConnectionOptions",
    "DbContextOptions",
    "validate_options",
    # Models
    "IdentityBase",
    "IdentityUserModel",
    "RoleClaimModel",
    "RoleModel",
    "UserClaimModel",
    "UserLoginModel",
    "UserRoleModel",
    "UserTokenModel",
    # Stores
    "RoleStore",
    "UserStore",
    # Schemas
    "Claim",
    "UserLoginInfo",
    "normalize_lookup_key",
    # Exceptions
    "ConfigurationError",
    "DuplicateLoginError",
    "DuplicateRoleNameError",
    "DuplicateUserNameError",
    "IdentityError",
    "RoleNotFoundError",
    "UseAfterDisposeError",
]
