"""SQLAlchemy model for named tokens stored per user and provider."""

from typing import Optional
from uuid import UUID

from sqlalchemy import ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from passage_identity.persistence.sqlalchemy.base import IdentityBase
from passage_identity.persistence.sqlalchemy.models.user_model import USER_TABLE_NAME


class UserTokenModel(IdentityBase):
    __tablename__ = "user_tokens"

    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey(f"{USER_TABLE_NAME}.id", ondelete="CASCADE"),
        primary_key=True,
    )
    login_provider: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), primary_key=True)
    value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<UserTokenModel(user_id={self.user_id}, "
            f"provider={self.login_provider}, name={self.name})>"
        )
