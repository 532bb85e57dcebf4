"""SQLAlchemy models for user and role claims."""

from typing import Optional
from uuid import UUID

from sqlalchemy import ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from passage_identity.persistence.sqlalchemy.base import IdentityBase
from passage_identity.persistence.sqlalchemy.models.user_model import USER_TABLE_NAME


class UserClaimModel(IdentityBase):
    """A claim held directly by a user."""

    __tablename__ = "user_claims"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey(f"{USER_TABLE_NAME}.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    claim_type: Mapped[str] = mapped_column(String(256), nullable=False)
    claim_value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<UserClaimModel(user_id={self.user_id}, type={self.claim_type})>"


class RoleClaimModel(IdentityBase):
    """A claim granted to every member of a role."""

    __tablename__ = "role_claims"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    role_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("roles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    claim_type: Mapped[str] = mapped_column(String(256), nullable=False)
    claim_value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<RoleClaimModel(role_id={self.role_id}, type={self.claim_type})>"
