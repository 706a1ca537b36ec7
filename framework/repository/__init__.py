"""
Repository pattern: typed data access over a SQLModel session, committed through a unit of work.
"""

from .async_base import AsyncRepository, IAsyncRepository
from .base import IRepository, Predicate, Repository
from .exceptions import EntityNotFoundError
from .query import AsyncQuery, Query
from .unit_of_work import AsyncUnitOfWork, IAsyncUnitOfWork, IUnitOfWork, UnitOfWork

__all__ = [
    "AsyncQuery",
    "AsyncRepository",
    "AsyncUnitOfWork",
    "EntityNotFoundError",
    "IAsyncRepository",
    "IAsyncUnitOfWork",
    "IRepository",
    "IUnitOfWork",
    "Predicate",
    "Query",
    "Repository",
    "UnitOfWork",
]
