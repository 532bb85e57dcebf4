"""Per-entity query and save surface of an identity database context."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, Generic, Optional, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.expression import ColumnElement, Select

if TYPE_CHECKING:
    from passage_identity.context.db_context import IdentityDbContext

T = TypeVar("T")


class EntitySet(Generic[T]):
    """Queries and tracks one mapped entity type within a context.

    All operations go through the owning context's session and fail with
    ``UseAfterDisposeError`` once that context has been disposed.
    """

    def __init__(self, context: IdentityDbContext[Any], entity_type: type[T]) -> None:
        self._context = context
        self._entity_type = entity_type

    @property
    def entity_type(self) -> type[T]:
        return self._entity_type

    @property
    def _session(self) -> AsyncSession:
        return self._context.session

    def select(self) -> Select[tuple[T]]:
        """Return a SELECT over this entity type for custom queries."""
        self._context.ensure_not_disposed()
        return select(self._entity_type)

    async def get(self, key: Any) -> Optional[T]:
        """Load an entity by primary key (a tuple for composite keys)."""
        return await self._session.get(self._entity_type, key)

    async def find(
        self,
        *criteria: ColumnElement[bool],
        order_by: Any = None,
        **filters: Any,
    ) -> list[T]:
        stmt = self.select().where(*self._criteria(criteria, filters))
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def first(
        self,
        *criteria: ColumnElement[bool],
        **filters: Any,
    ) -> Optional[T]:
        stmt = self.select().where(*self._criteria(criteria, filters)).limit(1)
        result = await self._session.execute(stmt)
        return result.scalars().first()

    async def count(self, *criteria: ColumnElement[bool], **filters: Any) -> int:
        stmt = (
            select(func.count())
            .select_from(self._entity_type)
            .where(*self._criteria(criteria, filters))
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def exists(self, *criteria: ColumnElement[bool], **filters: Any) -> bool:
        return await self.count(*criteria, **filters) > 0

    def add(self, entity: T) -> None:
        """Track a new entity; it is written on the next flush or save."""
        self._session.add(entity)

    def add_all(self, entities: Iterable[T]) -> None:
        self._session.add_all(entities)

    async def remove(self, entity: T) -> None:
        """Mark a tracked entity for deletion."""
        await self._session.delete(entity)

    def _criteria(
        self,
        criteria: tuple[ColumnElement[bool], ...],
        filters: dict[str, Any],
    ) -> list[ColumnElement[bool]]:
        clauses = list(criteria)
        for name, value in filters.items():
            column = getattr(self._entity_type, name)
            clauses.append(column.is_(None) if value is None else column == value)
        return clauses

    def __repr__(self) -> str:
        return f"EntitySet({self._entity_type.__name__})"
