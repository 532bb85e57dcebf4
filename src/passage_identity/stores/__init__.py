"""Stores implementing the account, role, claim, login and token surface."""

from passage_identity.stores.role_store import RoleStore
from passage_identity.stores.user_store import UserStore

__all__ = ["RoleStore", "UserStore"]
