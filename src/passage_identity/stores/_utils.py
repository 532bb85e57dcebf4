"""Shared helpers for store queries."""

from typing import Any, Optional

from sqlalchemy.sql.expression import ColumnElement


def matches(column: Any, value: Optional[str]) -> ColumnElement[bool]:
    """Equality that also matches NULL when ``value`` is None."""
    if value is None:
        return column.is_(None)
    return column == value
