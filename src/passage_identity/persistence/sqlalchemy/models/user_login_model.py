"""SQLAlchemy model for external logins linked to users."""

from typing import Optional
from uuid import UUID

from sqlalchemy import ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from passage_identity.persistence.sqlalchemy.base import IdentityBase
from passage_identity.persistence.sqlalchemy.models.user_model import USER_TABLE_NAME


class UserLoginModel(IdentityBase):
    """An external provider account (provider + key) linked to a user."""

    __tablename__ = "user_logins"

    login_provider: Mapped[str] = mapped_column(String(128), primary_key=True)
    provider_key: Mapped[str] = mapped_column(String(128), primary_key=True)
    provider_display_name: Mapped[Optional[str]] = mapped_column(
        String(256),
        nullable=True,
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey(f"{USER_TABLE_NAME}.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return (
            f"<UserLoginModel(provider={self.login_provider}, "
            f"user_id={self.user_id})>"
        )
