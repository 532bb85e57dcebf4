# ruff: noqa: E501 - Long import paths in __init__.py re-exports
"""SQLAlchemy models for identity storage."""

from passage_identity.persistence.sqlalchemy.models.claim_models import (
    RoleClaimModel,
    UserClaimModel,
)
from passage_identity.persistence.sqlalchemy.models.role_model import RoleModel
from passage_identity.persistence.sqlalchemy.models.user_login_model import (
    UserLoginModel,
)
from passage_identity.persistence.sqlalchemy.models.user_model import (
    USER_TABLE_NAME,
    IdentityUserModel,
)
from passage_identity.persistence.sqlalchemy.models.user_role_model import (
    UserRoleModel,
)
from passage_identity.persistence.sqlalchemy.models.user_token_model import (
    UserTokenModel,
)

__all__ = [
    "USER_TABLE_NAME",
    "IdentityUserModel",
    "RoleClaimModel",
    "RoleModel",
    "UserClaimModel",
    "UserLoginModel",
    "UserRoleModel",
    "UserTokenModel",
]
