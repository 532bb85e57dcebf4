"""User persistence on top of an identity database context."""

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Generic, Optional, TypeVar
from uuid import UUID

from sqlalchemy import delete, select, update

from passage_identity.context import EntitySet, IdentityDbContext
from passage_identity.exceptions import (
    DuplicateLoginError,
    DuplicateUserNameError,
    RoleNotFoundError,
)
from passage_identity.normalization import normalize_lookup_key
from passage_identity.persistence.sqlalchemy.models import (
    IdentityUserModel,
    RoleModel,
    UserClaimModel,
    UserLoginModel,
    UserRoleModel,
    UserTokenModel,
)
from passage_identity.persistence.sqlalchemy.models._stamps import new_stamp
from passage_identity.schemas import Claim, UserLoginInfo
from passage_identity.stores._utils import matches
from passage_identity.time import ensure_tz_aware, utc_now

logger = logging.getLogger(__name__)

TUser = TypeVar("TUser", bound=IdentityUserModel)


class UserStore(Generic[TUser]):
    """Account, role, claim, login, token and lockout storage for users.

    Operates on the user model the context is bound to. The store flushes
    its writes but never commits; the caller saves the unit of work through
    ``context.save_changes()``. Concurrency conflicts surface as
    ``StaleDataError`` on flush.
    """

    # Default lockout settings (can be overridden by subclasses)
    MAX_FAILED_ACCESS_ATTEMPTS: int = 5
    LOCKOUT_DURATION: timedelta = timedelta(minutes=15)

    def __init__(self, context: IdentityDbContext[TUser]) -> None:
        self._context = context

    @property
    def _users(self) -> EntitySet[TUser]:
        return self._context.users

    @property
    def _user_type(self) -> type[TUser]:
        return self._context.users.entity_type

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    async def create(self, user: TUser) -> TUser:
        self._normalize(user)
        if user.normalized_user_name and await self._users.exists(
            normalized_user_name=user.normalized_user_name,
        ):
            raise DuplicateUserNameError(user.user_name or "")

        if user.security_stamp is None:
            user.security_stamp = new_stamp()

        self._users.add(user)
        await self._context.session.flush()
        logger.info("Created user: %s (user name: %s)", user.id, user.user_name)
        return user

    async def update(self, user: TUser) -> TUser:
        normalized_user_name = normalize_lookup_key(user.user_name)
        # The pending rename must not be flushed by the duplicate check
        with self._context.session.no_autoflush:
            taken = bool(normalized_user_name) and await self._users.exists(
                self._user_type.id != user.id,
                normalized_user_name=normalized_user_name,
            )
        if taken:
            raise DuplicateUserNameError(user.user_name or "")

        self._normalize(user)
        await self._context.session.flush()
        logger.debug("Updated user: %s", user.id)
        return user

    async def delete(self, user: TUser) -> None:
        """Delete a user together with its roles, claims, logins and tokens."""
        session = self._context.session
        for model in (UserRoleModel, UserClaimModel, UserLoginModel, UserTokenModel):
            await session.execute(delete(model).where(model.user_id == user.id))

        await self._users.remove(user)
        await session.flush()
        logger.info("Deleted user and all associated data: %s", user.id)

    async def find_by_id(self, user_id: UUID) -> Optional[TUser]:
        return await self._users.get(user_id)

    async def find_by_name(self, user_name: str) -> Optional[TUser]:
        return await self._users.first(
            normalized_user_name=normalize_lookup_key(user_name),
        )

    async def find_by_email(self, email: str) -> Optional[TUser]:
        return await self._users.first(normalized_email=normalize_lookup_key(email))

    async def list_all(self) -> list[TUser]:
        return await self._users.find(order_by=self._user_type.created_at)

    async def count(self) -> int:
        return await self._users.count()

    def _normalize(self, user: TUser) -> None:
        user.normalized_user_name = normalize_lookup_key(user.user_name)
        user.normalized_email = normalize_lookup_key(user.email)

    # ------------------------------------------------------------------
    # Credentials (storage only; hashes are produced elsewhere)
    # ------------------------------------------------------------------

    async def set_password_hash(self, user: TUser, password_hash: Optional[str]) -> None:
        user.password_hash = password_hash
        user.security_stamp = new_stamp()
        await self._context.session.flush()
        logger.debug("Updated password hash for user: %s", user.id)

    async def get_password_hash(self, user: TUser) -> Optional[str]:
        return user.password_hash

    async def has_password(self, user: TUser) -> bool:
        return user.password_hash is not None

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    async def add_to_role(self, user: TUser, role_name: str) -> None:
        role = await self._require_role(role_name)
        if await self._context.user_roles.exists(user_id=user.id, role_id=role.id):
            return

        self._context.user_roles.add(UserRoleModel(user_id=user.id, role_id=role.id))
        await self._context.session.flush()
        logger.info("Added user %s to role %s", user.id, role.name)

    async def remove_from_role(self, user: TUser, role_name: str) -> bool:
        role = await self._find_role(role_name)
        if role is None:
            return False

        link = await self._context.user_roles.get((user.id, role.id))
        if link is None:
            return False

        await self._context.user_roles.remove(link)
        await self._context.session.flush()
        logger.info("Removed user %s from role %s", user.id, role.name)
        return True

    async def get_roles(self, user: TUser) -> list[str]:
        stmt = (
            select(RoleModel.name)
            .join(UserRoleModel, UserRoleModel.role_id == RoleModel.id)
            .where(UserRoleModel.user_id == user.id)
            .order_by(RoleModel.normalized_name)
        )
        result = await self._context.session.execute(stmt)
        return [name for name in result.scalars().all() if name is not None]

    async def is_in_role(self, user: TUser, role_name: str) -> bool:
        role = await self._find_role(role_name)
        if role is None:
            return False
        return await self._context.user_roles.exists(user_id=user.id, role_id=role.id)

    async def get_users_in_role(self, role_name: str) -> list[TUser]:
        role = await self._find_role(role_name)
        if role is None:
            return []

        stmt = (
            self._users.select()
            .join(UserRoleModel, UserRoleModel.user_id == self._user_type.id)
            .where(UserRoleModel.role_id == role.id)
            .order_by(self._user_type.normalized_user_name)
        )
        result = await self._context.session.execute(stmt)
        return list(result.scalars().all())

    async def _find_role(self, role_name: str) -> Optional[RoleModel]:
        return await self._context.roles.first(
            normalized_name=normalize_lookup_key(role_name),
        )

    async def _require_role(self, role_name: str) -> RoleModel:
        role = await self._find_role(role_name)
        if role is None:
            raise RoleNotFoundError(role_name)
        return role

    # ------------------------------------------------------------------
    # Claims
    # ------------------------------------------------------------------

    async def add_claims(self, user: TUser, claims: Iterable[Claim]) -> None:
        self._context.user_claims.add_all(
            UserClaimModel(
                user_id=user.id,
                claim_type=claim.type,
                claim_value=claim.value,
            )
            for claim in claims
        )
        await self._context.session.flush()

    async def get_claims(self, user: TUser) -> list[Claim]:
        models = await self._context.user_claims.find(
            order_by=UserClaimModel.id,
            user_id=user.id,
        )
        return [Claim(type=m.claim_type, value=m.claim_value) for m in models]

    async def replace_claim(self, user: TUser, claim: Claim, new_claim: Claim) -> int:
        """Replace every copy of ``claim`` on the user; returns how many."""
        stmt = (
            update(UserClaimModel)
            .where(
                UserClaimModel.user_id == user.id,
                UserClaimModel.claim_type == claim.type,
                matches(UserClaimModel.claim_value, claim.value),
            )
            .values(claim_type=new_claim.type, claim_value=new_claim.value)
        )
        result = await self._context.session.execute(stmt)
        await self._context.session.flush()
        return result.rowcount  # type: ignore

    async def remove_claims(self, user: TUser, claims: Iterable[Claim]) -> int:
        removed = 0
        for claim in claims:
            stmt = delete(UserClaimModel).where(
                UserClaimModel.user_id == user.id,
                UserClaimModel.claim_type == claim.type,
                matches(UserClaimModel.claim_value, claim.value),
            )
            result = await self._context.session.execute(stmt)
            removed += result.rowcount  # type: ignore
        await self._context.session.flush()
        return removed

    async def get_users_for_claim(self, claim: Claim) -> list[TUser]:
        stmt = (
            self._users.select()
            .join(UserClaimModel, UserClaimModel.user_id == self._user_type.id)
            .where(
                UserClaimModel.claim_type == claim.type,
                matches(UserClaimModel.claim_value, claim.value),
            )
            .distinct()
        )
        result = await self._context.session.execute(stmt)
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # External logins
    # ------------------------------------------------------------------

    async def add_login(self, user: TUser, login: UserLoginInfo) -> None:
        existing = await self._context.user_logins.get(
            (login.login_provider, login.provider_key),
        )
        if existing is not None:
            raise DuplicateLoginError(login.login_provider, login.provider_key)

        self._context.user_logins.add(
            UserLoginModel(
                login_provider=login.login_provider,
                provider_key=login.provider_key,
                provider_display_name=login.display_name,
                user_id=user.id,
            ),
        )
        await self._context.session.flush()
        logger.info("Linked %s login to user %s", login.login_provider, user.id)

    async def remove_login(
        self,
        user: TUser,
        login_provider: str,
        provider_key: str,
    ) -> bool:
        login = await self._context.user_logins.first(
            user_id=user.id,
            login_provider=login_provider,
            provider_key=provider_key,
        )
        if login is None:
            return False

        await self._context.user_logins.remove(login)
        await self._context.session.flush()
        logger.info("Unlinked %s login from user %s", login_provider, user.id)
        return True

    async def get_logins(self, user: TUser) -> list[UserLoginInfo]:
        models = await self._context.user_logins.find(
            order_by=UserLoginModel.login_provider,
            user_id=user.id,
        )
        return [
            UserLoginInfo(
                login_provider=m.login_provider,
                provider_key=m.provider_key,
                display_name=m.provider_display_name,
            )
            for m in models
        ]

    async def find_by_login(
        self,
        login_provider: str,
        provider_key: str,
    ) -> Optional[TUser]:
        login = await self._context.user_logins.get((login_provider, provider_key))
        if login is None:
            return None
        return await self._users.get(login.user_id)

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    async def set_token(
        self,
        user: TUser,
        login_provider: str,
        name: str,
        value: Optional[str],
    ) -> None:
        token = await self._context.user_tokens.get((user.id, login_provider, name))
        if token is None:
            self._context.user_tokens.add(
                UserTokenModel(
                    user_id=user.id,
                    login_provider=login_provider,
                    name=name,
                    value=value,
                ),
            )
        else:
            token.value = value
        await self._context.session.flush()

    async def get_token(
        self,
        user: TUser,
        login_provider: str,
        name: str,
    ) -> Optional[str]:
        token = await self._context.user_tokens.get((user.id, login_provider, name))
        return token.value if token else None

    async def remove_token(self, user: TUser, login_provider: str, name: str) -> bool:
        token = await self._context.user_tokens.get((user.id, login_provider, name))
        if token is None:
            return False
        await self._context.user_tokens.remove(token)
        await self._context.session.flush()
        return True

    # ------------------------------------------------------------------
    # Lockout
    # ------------------------------------------------------------------

    async def increment_access_failed_count(self, user: TUser) -> int:
        """Count a failed sign-in; locks the account when the limit is hit."""
        user.access_failed_count += 1

        if (
            user.lockout_enabled
            and user.access_failed_count >= self.MAX_FAILED_ACCESS_ATTEMPTS
        ):
            user.lockout_end = utc_now() + self.LOCKOUT_DURATION
            logger.warning(
                "Account locked for user %s due to %d failed attempts",
                user.id,
                user.access_failed_count,
            )

        await self._context.session.flush()
        return user.access_failed_count

    async def reset_access_failed_count(self, user: TUser) -> None:
        user.access_failed_count = 0
        user.lockout_end = None
        await self._context.session.flush()

    async def set_lockout_end(
        self,
        user: TUser,
        lockout_end: Optional[datetime],
    ) -> None:
        user.lockout_end = lockout_end
        await self._context.session.flush()

    async def is_locked_out(self, user: TUser) -> tuple[bool, Optional[datetime]]:
        """Return (is_locked, lockout_end) with lockout_end None when unlocked."""
        if user.is_locked_out() and user.lockout_end is not None:
            return True, ensure_tz_aware(user.lockout_end)
        return False, None
