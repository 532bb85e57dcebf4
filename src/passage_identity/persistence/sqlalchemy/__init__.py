"""SQLAlchemy implementation of the identity schema.

Provides:
- IdentityBase: Declarative base for identity models
- IdentityUserModel: Abstract user model applications subclass
- RoleModel, UserRoleModel: Roles and memberships
- UserClaimModel, RoleClaimModel: Claims
- UserLoginModel, UserTokenModel: External logins and stored tokens
"""

from passage_identity.persistence.sqlalchemy.base import IdentityBase, TimestampMixin
from passage_identity.persistence.sqlalchemy.models import (
    USER_TABLE_NAME,
    IdentityUserModel,
    RoleClaimModel,
    RoleModel,
    UserClaimModel,
    UserLoginModel,
    UserRoleModel,
    UserTokenModel,
)

__all__ = [
    "USER_TABLE_NAME",
    "IdentityBase",
    "IdentityUserModel",
    "RoleClaimModel",
    "RoleModel",
    "TimestampMixin",
    "UserClaimModel",
    "UserLoginModel",
    "UserRoleModel",
    "UserTokenModel",
]
