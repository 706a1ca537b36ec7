"""
Unit of Work: shared session for related repositories and the single commit point.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional

from loguru import logger
from sqlalchemy import event
from sqlmodel import Session
from sqlmodel.ext.asyncio.session import AsyncSession

from .async_base import AsyncRepository
from .base import Repository


def _pending_count(session: Session) -> int:
    """Entities that the next flush will insert, update or delete."""
    modified = [obj for obj in session.dirty if session.is_modified(obj)]
    return len(session.new) + len(modified) + len(session.deleted)


class _WriteCounter:
    """Counts entities written by flushes, including explicit ones, per committed transaction."""

    def __init__(self, session: Session):
        self.flushed = 0
        self.committed = 0
        event.listen(session, "after_flush", self._after_flush)
        event.listen(session, "after_commit", self._after_commit)
        event.listen(session, "after_rollback", self._after_rollback)

    def _after_flush(self, session, flush_context):
        # new/dirty/deleted still show the pre-flush state here
        self.flushed += _pending_count(session)

    def _after_commit(self, session):
        self.committed, self.flushed = self.flushed, 0

    def _after_rollback(self, session):
        self.flushed = 0


class IUnitOfWork(ABC):
    @abstractmethod
    def save_changes(self) -> int:
        """Commit staged changes; returns the number of entities written."""


class IAsyncUnitOfWork(ABC):
    @abstractmethod
    async def save_changes_async(self) -> int:
        """Commit staged changes; returns the number of entities written."""


class _RepositoryCache:
    repository_class = None

    def __init__(self, session):
        if session is None:
            raise ValueError("Session must be provided. Use from_session() or pass session explicitly.")
        self.session = session
        self._repositories: Dict[str, object] = {}

    def get_repository(self, repo_class, model_class):
        """Get or create a repository instance (cached); repo_class binds its own model."""
        cache_key = f"{repo_class.__name__}_{model_class.__name__}"
        if cache_key not in self._repositories:
            self._repositories[cache_key] = repo_class(self.session)
        return self._repositories[cache_key]

    def repository_for(self, model_class):
        """Get or create a generic repository for model_class."""
        cache_key = f"{self.repository_class.__name__}_{model_class.__name__}"
        if cache_key not in self._repositories:
            self._repositories[cache_key] = self.repository_class(self.session, model_class)
        return self._repositories[cache_key]


class UnitOfWork(_RepositoryCache, IUnitOfWork):
    """Unit of work over a synchronous Session."""

    repository_class = Repository

    def __init__(self, session: Optional[Session] = None):
        super().__init__(session)
        self._written = _WriteCounter(self.session)

    @classmethod
    def from_session(cls, session: Session) -> "UnitOfWork":
        return cls(session=session)

    def save_changes(self) -> int:
        self._written.committed = 0
        try:
            self.session.commit()
        except Exception as e:
            logger.error(f"Commit failed, rolling back staged changes: {e}")
            self.session.rollback()
            raise
        count = self._written.committed
        logger.debug(f"Committed {count} change(s)")
        return count

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    def flush(self) -> None:
        """Flush session (e.g. to get auto-increment IDs)."""
        self.session.flush()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.rollback()
        else:
            self.commit()


class AsyncUnitOfWork(_RepositoryCache, IAsyncUnitOfWork):
    """Manages related repositories with a shared AsyncSession and transaction commit/rollback."""

    repository_class = AsyncRepository

    def __init__(self, session: Optional[AsyncSession] = None):
        super().__init__(session)
        self._written = _WriteCounter(self.session.sync_session)

    @classmethod
    async def from_session(cls, session: AsyncSession) -> "AsyncUnitOfWork":
        """Create AsyncUnitOfWork from an existing session."""
        return cls(session=session)

    async def save_changes_async(self) -> int:
        self._written.committed = 0
        try:
            await self.session.commit()
        except Exception as e:
            logger.error(f"Commit failed, rolling back staged changes: {e}")
            await self.session.rollback()
            raise
        count = self._written.committed
        logger.debug(f"Committed {count} change(s)")
        return count

    async def commit(self) -> None:
        """Commit all changes."""
        await self.session.commit()

    async def rollback(self) -> None:
        """Rollback all changes."""
        await self.session.rollback()

    async def flush(self) -> None:
        """Flush session (e.g. to get auto-increment IDs)."""
        await self.session.flush()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            await self.rollback()
        else:
            await self.commit()
