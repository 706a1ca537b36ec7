"""
Lazy queries returned by repositories.

A query holds a SQLAlchemy statement and the tracking flag it was built with;
nothing touches the database until it is executed, and it can be executed
any number of times.
"""

from typing import Any, AsyncIterator, Generic, Iterator, List, Optional, TypeVar

from sqlalchemy import func
from sqlmodel import select

R = TypeVar("R")


class _BaseQuery(Generic[R]):
    def __init__(self, repository, statement, tracking: bool = False):
        self._repository = repository
        self._statement = statement
        self._tracking = tracking

    @property
    def statement(self):
        """Underlying SQLAlchemy statement."""
        return self._statement

    @property
    def tracking(self) -> bool:
        return self._tracking

    def _derive(self, statement):
        return type(self)(self._repository, statement, self._tracking)

    def where(self, *criteria: Any):
        """Narrow the query further."""
        return self._derive(self._statement.where(*criteria))

    def order_by(self, *clauses: Any):
        return self._derive(self._statement.order_by(*clauses))

    def limit(self, limit: int):
        return self._derive(self._statement.limit(limit))

    def offset(self, offset: int):
        return self._derive(self._statement.offset(offset))

    def _count_statement(self):
        return select(func.count()).select_from(self._statement.order_by(None).subquery())

    def __repr__(self) -> str:
        return f"<{type(self).__name__} tracking={self._tracking} {self._statement}>"


class Query(_BaseQuery[R]):
    """Lazy query executed through a synchronous repository."""

    def all(self) -> List[R]:
        return self._repository._fetch(self._statement, self._tracking)

    def first(self) -> Optional[R]:
        rows = self._repository._fetch(self._statement.limit(1), self._tracking)
        return rows[0] if rows else None

    def count(self) -> int:
        return self._repository._scalar(self._count_statement())

    def __iter__(self) -> Iterator[R]:
        return iter(self.all())


class AsyncQuery(_BaseQuery[R]):
    """Lazy query executed through an async repository."""

    async def all(self) -> List[R]:
        return await self._repository._fetch(self._statement, self._tracking)

    async def first(self) -> Optional[R]:
        rows = await self._repository._fetch(self._statement.limit(1), self._tracking)
        return rows[0] if rows else None

    async def count(self) -> int:
        return await self._repository._scalar(self._count_statement())

    async def __aiter__(self) -> AsyncIterator[R]:
        for row in await self.all():
            yield row
