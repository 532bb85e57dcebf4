"""Abstract SQLAlchemy model for identity users.

``IdentityUserModel`` is never mapped by itself. An application declares
exactly one concrete subclass, which maps the ``users`` table and is the
user type its database context is bound to::

    class ApplicationUser(IdentityUserModel):
        pass
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from passage_identity.persistence.sqlalchemy.base import IdentityBase, TimestampMixin
from passage_identity.persistence.sqlalchemy.models._stamps import (
    next_concurrency_stamp,
)
from passage_identity.time import ensure_tz_aware, utc_now

USER_TABLE_NAME = "users"


class IdentityUserModel(IdentityBase, TimestampMixin):
    """Default user schema shared by all applications."""

    __abstract__ = True
    __tablename__ = USER_TABLE_NAME

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_name: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    normalized_user_name: Mapped[Optional[str]] = mapped_column(
        String(256),
        unique=True,
        nullable=True,
        index=True,
    )
    email: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    normalized_email: Mapped[Optional[str]] = mapped_column(
        String(256),
        nullable=True,
        index=True,
    )
    email_confirmed: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    password_hash: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    security_stamp: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    phone_number: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    phone_number_confirmed: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    two_factor_enabled: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    lockout_end: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    lockout_enabled: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    access_failed_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    concurrency_stamp: Mapped[str] = mapped_column(String(36), nullable=False)

    @declared_attr.directive
    def __mapper_args__(cls) -> dict[str, Any]:
        # Evaluated per concrete subclass, after its table exists.
        return {
            "version_id_col": cls.__table__.c.concurrency_stamp,
            "version_id_generator": next_concurrency_stamp,
        }

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("id", uuid4())
        kwargs.setdefault("email_confirmed", False)
        kwargs.setdefault("phone_number_confirmed", False)
        kwargs.setdefault("two_factor_enabled", False)
        kwargs.setdefault("lockout_enabled", True)
        kwargs.setdefault("access_failed_count", 0)
        super().__init__(**kwargs)

    def is_locked_out(self) -> bool:
        if not self.lockout_enabled or self.lockout_end is None:
            return False
        return utc_now() < ensure_tz_aware(self.lockout_end)

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__}(id={self.id}, user_name={self.user_name}, "
            f"email={self.email})>"
        )
