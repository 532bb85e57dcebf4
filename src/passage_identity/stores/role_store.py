"""Role persistence on top of an identity database context."""

import logging
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import delete, select

from passage_identity.context import IdentityDbContext
from passage_identity.exceptions import DuplicateRoleNameError
from passage_identity.normalization import normalize_lookup_key
from passage_identity.persistence.sqlalchemy.models import (
    RoleClaimModel,
    RoleModel,
    UserRoleModel,
)
from passage_identity.schemas import Claim
from passage_identity.stores._utils import matches

logger = logging.getLogger(__name__)


class RoleStore:
    """CRUD and claim storage for roles.

    The store flushes its writes but never commits; the caller saves the
    unit of work through ``context.save_changes()``.
    """

    def __init__(self, context: IdentityDbContext[Any]) -> None:
        self._context = context

    async def create(self, role: RoleModel) -> RoleModel:
        role.normalized_name = normalize_lookup_key(role.name)
        if role.normalized_name and await self._context.roles.exists(
            normalized_name=role.normalized_name,
        ):
            raise DuplicateRoleNameError(role.name or "")

        self._context.roles.add(role)
        await self._context.session.flush()
        logger.info("Created role: %s (%s)", role.name, role.id)
        return role

    async def update(self, role: RoleModel) -> RoleModel:
        normalized_name = normalize_lookup_key(role.name)
        with self._context.session.no_autoflush:
            taken = bool(normalized_name) and await self._context.roles.exists(
                RoleModel.id != role.id,
                normalized_name=normalized_name,
            )
        if taken:
            raise DuplicateRoleNameError(role.name or "")

        role.normalized_name = normalized_name
        await self._context.session.flush()
        logger.debug("Updated role: %s", role.id)
        return role

    async def delete(self, role: RoleModel) -> None:
        session = self._context.session
        await session.execute(
            delete(UserRoleModel).where(UserRoleModel.role_id == role.id),
        )
        await session.execute(
            delete(RoleClaimModel).where(RoleClaimModel.role_id == role.id),
        )
        await self._context.roles.remove(role)
        await session.flush()
        logger.info("Deleted role: %s (%s)", role.name, role.id)

    async def find_by_id(self, role_id: UUID) -> Optional[RoleModel]:
        return await self._context.roles.get(role_id)

    async def find_by_name(self, name: str) -> Optional[RoleModel]:
        return await self._context.roles.first(
            normalized_name=normalize_lookup_key(name),
        )

    async def list_all(self) -> list[RoleModel]:
        return await self._context.roles.find(order_by=RoleModel.normalized_name)

    async def add_claim(self, role: RoleModel, claim: Claim) -> None:
        self._context.role_claims.add(
            RoleClaimModel(
                role_id=role.id,
                claim_type=claim.type,
                claim_value=claim.value,
            ),
        )
        await self._context.session.flush()

    async def get_claims(self, role: RoleModel) -> list[Claim]:
        stmt = (
            select(RoleClaimModel)
            .where(RoleClaimModel.role_id == role.id)
            .order_by(RoleClaimModel.id)
        )
        result = await self._context.session.execute(stmt)
        return [
            Claim(type=model.claim_type, value=model.claim_value)
            for model in result.scalars().all()
        ]

    async def remove_claim(self, role: RoleModel, claim: Claim) -> int:
        """Remove all copies of a claim from a role; returns how many."""
        stmt = delete(RoleClaimModel).where(
            RoleClaimModel.role_id == role.id,
            RoleClaimModel.claim_type == claim.type,
            matches(RoleClaimModel.claim_value, claim.value),
        )
        result = await self._context.session.execute(stmt)
        await self._context.session.flush()
        return result.rowcount  # type: ignore
