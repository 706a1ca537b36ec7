"""
Async repository: same contract as Repository, with I/O-bound operations as coroutines.
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, Iterable, List, Optional, Type

from sqlmodel.ext.asyncio.session import AsyncSession

from .base import Predicate, RepositoryCore, T
from .query import AsyncQuery


class IAsyncRepository(ABC, Generic[T]):
    """Async repository interface."""

    @abstractmethod
    def add(self, entity: T) -> None:
        """Stage entity for insertion."""

    @abstractmethod
    async def add_async(self, entity: T) -> None:
        """Stage entity for insertion."""

    @abstractmethod
    def add_range(self, entities: Iterable[T]) -> None:
        """Stage entities for insertion."""

    @abstractmethod
    async def add_range_async(self, entities: Iterable[T]) -> None:
        """Stage entities for insertion."""

    @abstractmethod
    async def any_async(self, expression: Predicate) -> bool:
        """Whether at least one entity matches."""

    @abstractmethod
    def count_by(self, expression: Predicate) -> AsyncQuery:
        """Lazy query of (matches, count) rows."""

    @abstractmethod
    def delete(self, entity: T) -> None:
        """Stage entity for removal without loading cascaded relationships."""

    @abstractmethod
    async def delete_async(self, entity: T) -> None:
        """Stage entity for removal, loading cascaded relationships as needed."""

    @abstractmethod
    async def delete_by_expression_async(self, expression: Predicate) -> None:
        """Stage removal of the first match; raises EntityNotFoundError if none."""

    @abstractmethod
    async def delete_by_id_async(self, id: Any) -> None:
        """Stage removal by primary key; raises EntityNotFoundError if absent."""

    @abstractmethod
    def delete_range(self, entities: Iterable[T]) -> None:
        """Stage entities for removal without loading cascaded relationships."""

    @abstractmethod
    async def delete_range_async(self, entities: Iterable[T]) -> None:
        """Stage entities for removal, loading cascaded relationships as needed."""

    @abstractmethod
    async def first_async(self, expression: Predicate, tracking: bool = True) -> T:
        """First match; raises EntityNotFoundError if there is none."""

    @abstractmethod
    async def first_or_default_async(self, expression: Predicate, tracking: bool = True) -> Optional[T]:
        """First match or None."""

    @abstractmethod
    def get_all(self) -> AsyncQuery[T]:
        """Lazy query over all entities, detached."""

    @abstractmethod
    def get_all_with_tracking(self) -> AsyncQuery[T]:
        """Lazy query over all entities, tracked."""

    @abstractmethod
    async def get_by_expression_async(self, expression: Predicate) -> Optional[T]:
        """First match or None, detached."""

    @abstractmethod
    async def get_by_expression_with_tracking_async(self, expression: Predicate) -> Optional[T]:
        """First match or None, tracked."""

    @abstractmethod
    async def get_first_async(self) -> Optional[T]:
        """Any one entity or None, detached."""

    @abstractmethod
    def update(self, entity: T) -> None:
        """Mark entity as modified."""

    @abstractmethod
    def update_range(self, entities: Iterable[T]) -> None:
        """Mark entities as modified."""

    @abstractmethod
    def where(self, expression: Predicate) -> AsyncQuery[T]:
        """Lazy filtered query, detached."""

    @abstractmethod
    def where_with_tracking(self, expression: Predicate) -> AsyncQuery[T]:
        """Lazy filtered query, tracked."""


class AsyncRepository(RepositoryCore[T], IAsyncRepository[T]):
    """
    Generic repository over an AsyncSession.

    Staging methods and lazy query builders are plain methods since they do no
    I/O; everything that reaches the database is awaited. Cancelling the
    awaiting task aborts the driver call with asyncio.CancelledError.

    delete and delete_range only work when removing the entity needs no load.
    Entities with cascaded relationships that are not loaded yet go through
    delete_async, which lets the session load them first.
    """

    query_class = AsyncQuery

    def __init__(self, session: AsyncSession, model: Type[T]):
        super().__init__(session, model)

    async def _fetch(self, statement, tracking: bool) -> List[Any]:
        with self._tracker.no_autoflush:
            known = self._known_identities(tracking)
            result = await self.session.exec(statement)
            rows = list(result.all())
        return self._materialize(rows, tracking, known)

    async def _scalar(self, statement) -> Any:
        with self._tracker.no_autoflush:
            result = await self.session.exec(statement)
            return result.one()

    async def add_async(self, entity: T) -> None:
        self.add(entity)

    async def add_range_async(self, entities: Iterable[T]) -> None:
        self.add_range(entities)

    async def any_async(self, expression: Predicate) -> bool:
        return bool(await self._scalar(self._any_statement(expression)))

    async def first_async(self, expression: Predicate, tracking: bool = True) -> T:
        entity = await self.first_or_default_async(expression, tracking=tracking)
        if entity is None:
            raise self._not_found(expression)
        return entity

    async def first_or_default_async(self, expression: Predicate, tracking: bool = True) -> Optional[T]:
        rows = await self._fetch(self._first_statement(expression), tracking)
        return rows[0] if rows else None

    async def get_by_expression_async(self, expression: Predicate) -> Optional[T]:
        return await self.first_or_default_async(expression, tracking=False)

    async def get_by_expression_with_tracking_async(self, expression: Predicate) -> Optional[T]:
        return await self.first_or_default_async(expression, tracking=True)

    async def get_first_async(self) -> Optional[T]:
        rows = await self._fetch(self._first_statement(), tracking=False)
        return rows[0] if rows else None

    async def delete_by_expression_async(self, expression: Predicate) -> None:
        """Stage removal of the first match; raises EntityNotFoundError if none."""
        entity = await self.first_or_default_async(expression, tracking=True)
        if entity is None:
            raise self._not_found(expression)
        await self.delete_async(entity)

    async def delete_by_id_async(self, id: Any) -> None:
        """Stage removal by primary key; raises EntityNotFoundError if absent."""
        with self._tracker.no_autoflush:
            entity = await self.session.get(self.model, id)
        if entity is None:
            raise self._not_found(f"id={id!r}")
        await self.delete_async(entity)

    async def delete_async(self, entity: T) -> None:
        target = self._deletion_target(entity)
        if target is None:
            return
        with self._tracker.no_autoflush:
            await self.session.delete(target)

    async def delete_range_async(self, entities: Iterable[T]) -> None:
        for entity in list(entities):
            await self.delete_async(entity)
