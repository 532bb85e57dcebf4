"""SQLAlchemy model linking users to roles."""

from uuid import UUID

from sqlalchemy import ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from passage_identity.persistence.sqlalchemy.base import IdentityBase
from passage_identity.persistence.sqlalchemy.models.user_model import USER_TABLE_NAME


class UserRoleModel(IdentityBase):
    __tablename__ = "user_roles"

    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey(f"{USER_TABLE_NAME}.id", ondelete="CASCADE"),
        primary_key=True,
    )
    role_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("roles.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<UserRoleModel(user_id={self.user_id}, role_id={self.role_id})>"
