"""SQLAlchemy model for identity roles."""

from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from passage_identity.persistence.sqlalchemy.base import IdentityBase
from passage_identity.persistence.sqlalchemy.models._stamps import (
    next_concurrency_stamp,
)


class RoleModel(IdentityBase):
    """SQLAlchemy model for roles users can be members of."""

    __tablename__ = "roles"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    normalized_name: Mapped[Optional[str]] = mapped_column(
        String(256),
        unique=True,
        nullable=True,
        index=True,
    )
    concurrency_stamp: Mapped[str] = mapped_column(String(36), nullable=False)

    __mapper_args__ = {
        "version_id_col": concurrency_stamp,
        "version_id_generator": next_concurrency_stamp,
    }

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("id", uuid4())
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return f"<RoleModel(id={self.id}, name={self.name})>"
