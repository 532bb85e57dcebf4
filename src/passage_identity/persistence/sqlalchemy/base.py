"""SQLAlchemy declarative base for passage_identity models.

Applications that keep further tables next to the identity schema should
declare them on ``IdentityBase`` too, so that one ``MetaData`` covers
the whole database and foreign keys resolve across both.
"""

from datetime import datetime

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from passage_identity.time import utc_now


class IdentityBase(DeclarativeBase):
    """Declarative base for identity models."""


class TimestampMixin:
    """Mixin for created_at and updated_at timestamps (utc_now)."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )
