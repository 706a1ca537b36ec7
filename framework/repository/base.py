"""
Repository interface and generic implementation over a SQLModel session.
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, Iterable, List, Optional, Type, TypeVar

from sqlalchemy import Boolean, case, false, func, inspect, true, type_coerce
from sqlalchemy.orm import make_transient_to_detached
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import Session, SQLModel, select

from .exceptions import EntityNotFoundError
from .query import Query

T = TypeVar("T", bound=SQLModel)

# Boolean column expression over the entity, e.g. User.email == "a@b.c"
Predicate = ColumnElement[bool]


class IRepository(ABC, Generic[T]):
    """Repository interface; defines the standard data access API."""

    @abstractmethod
    def add(self, entity: T) -> None:
        """Stage entity for insertion."""

    @abstractmethod
    def add_range(self, entities: Iterable[T]) -> None:
        """Stage entities for insertion."""

    @abstractmethod
    def any(self, expression: Predicate) -> bool:
        """Whether at least one entity matches."""

    @abstractmethod
    def count_by(self, expression: Predicate) -> Query:
        """Lazy query of (matches, count) rows."""

    @abstractmethod
    def delete(self, entity: T) -> None:
        """Stage entity for removal."""

    @abstractmethod
    def delete_range(self, entities: Iterable[T]) -> None:
        """Stage entities for removal."""

    @abstractmethod
    def first(self, expression: Predicate, tracking: bool = True) -> T:
        """First match; raises EntityNotFoundError if there is none."""

    @abstractmethod
    def first_or_default(self, expression: Predicate, tracking: bool = True) -> Optional[T]:
        """First match or None."""

    @abstractmethod
    def get_all(self) -> Query[T]:
        """Lazy query over all entities, detached."""

    @abstractmethod
    def get_all_with_tracking(self) -> Query[T]:
        """Lazy query over all entities, tracked."""

    @abstractmethod
    def get_by_expression(self, expression: Predicate) -> Optional[T]:
        """First match or None, detached."""

    @abstractmethod
    def get_by_expression_with_tracking(self, expression: Predicate) -> Optional[T]:
        """First match or None, tracked."""

    @abstractmethod
    def get_first(self) -> Optional[T]:
        """Any one entity or None, detached."""

    @abstractmethod
    def update(self, entity: T) -> None:
        """Mark entity as modified."""

    @abstractmethod
    def update_range(self, entities: Iterable[T]) -> None:
        """Mark entities as modified."""

    @abstractmethod
    def where(self, expression: Predicate) -> Query[T]:
        """Lazy filtered query, detached."""

    @abstractmethod
    def where_with_tracking(self, expression: Predicate) -> Query[T]:
        """Lazy filtered query, tracked."""


class RepositoryCore(Generic[T]):
    """
    Staging, statement building and tracking policy shared by the sync and
    async repositories. Nothing here performs I/O.
    """

    query_class = Query

    def __init__(self, session, model: Type[T]):
        """Bind repository to a session and a model."""
        self.session = session
        self.model = model

    @property
    def _tracker(self) -> Session:
        # AsyncSession proxies a plain Session; staging happens on it
        return getattr(self.session, "sync_session", self.session)

    # --- staging ---

    def add(self, entity: T) -> None:
        self._tracker.add(entity)

    def add_range(self, entities: Iterable[T]) -> None:
        self._tracker.add_all(list(entities))

    def delete(self, entity: T) -> None:
        target = self._deletion_target(entity)
        if target is not None:
            self._tracker.delete(target)

    def delete_range(self, entities: Iterable[T]) -> None:
        for entity in list(entities):
            self.delete(entity)

    def update(self, entity: T) -> None:
        target = self._tracked(entity)
        if target is not entity:
            for attr in inspect(self.model).column_attrs:
                setattr(target, attr.key, getattr(entity, attr.key))
            return

        state = inspect(entity)
        if state.transient and self._identity_of(entity) is not None:
            make_transient_to_detached(entity)
            self._tracker.add(entity)
            for attr in state.mapper.column_attrs:
                if not any(column.primary_key for column in attr.columns):
                    flag_modified(entity, attr.key)
            return

        # Detached snapshots keep their attribute history, re-attaching is enough
        self._tracker.add(entity)

    def update_range(self, entities: Iterable[T]) -> None:
        for entity in list(entities):
            self.update(entity)

    # --- lazy queries ---

    def get_all(self):
        return self.query_class(self, select(self.model), tracking=False)

    def get_all_with_tracking(self):
        return self.query_class(self, select(self.model), tracking=True)

    def where(self, expression: Predicate):
        return self.query_class(self, select(self.model).where(expression), tracking=False)

    def where_with_tracking(self, expression: Predicate):
        return self.query_class(self, select(self.model).where(expression), tracking=True)

    def count_by(self, expression: Predicate):
        bucket = type_coerce(case((expression, true()), else_=false()), Boolean).label("matches")
        statement = select(bucket, func.count()).select_from(self.model).group_by(bucket)
        # Rows are (matches, count) tuples, never entities
        return self.query_class(self, statement, tracking=True)

    # --- statements ---

    def _first_statement(self, expression: Optional[Predicate] = None):
        statement = select(self.model)
        if expression is not None:
            statement = statement.where(expression)
        return statement.limit(1)

    def _any_statement(self, expression: Predicate):
        return select(select(self.model).where(expression).exists())

    # --- tracking ---

    def _identity_of(self, entity: T):
        state = inspect(entity)
        if state.key is not None:
            return state.key
        mapper = state.mapper
        primary_key = mapper.primary_key_from_instance(entity)
        if any(value is None for value in primary_key):
            return None
        return mapper.identity_key_from_primary_key(primary_key)

    def _deletion_target(self, entity: T) -> Optional[T]:
        """Instance the session should mark deleted; None when nothing reached the store."""
        target = self._tracked(entity)
        state = inspect(target)
        if state.pending:
            # Never flushed, just forget it
            self._tracker.expunge(target)
            return None
        if state.transient:
            if self._identity_of(target) is None:
                raise ValueError(f"Cannot delete {self.model.__name__} without a primary key")
            make_transient_to_detached(target)
        return target

    def _tracked(self, entity: T) -> T:
        """The session's own instance for entity's identity, else entity itself."""
        key = self._identity_of(entity)
        if key is None:
            return entity
        existing = self._tracker.identity_map.get(key)
        return existing if existing is not None else entity

    def _known_identities(self, tracking: bool) -> set:
        if tracking:
            return set()
        return set(self._tracker.identity_map.keys())

    def _materialize(self, rows: List[Any], tracking: bool, known: set) -> List[Any]:
        """Apply tracking policy to freshly executed rows."""
        if tracking:
            return rows
        snapshots = []
        for row in rows:
            if not isinstance(row, self.model):
                snapshots.append(row)
            elif inspect(row).key in known:
                snapshots.append(self._detached_copy(row))
            else:
                self._tracker.expunge(row)
                snapshots.append(row)
        return snapshots

    def _detached_copy(self, entity: T) -> T:
        """Detached copy holding the last loaded values, not unflushed edits."""
        state = inspect(entity)
        values = {}
        for attr in state.mapper.column_attrs:
            history = state.attrs[attr.key].history
            if history.deleted:
                values[attr.key] = history.deleted[0]
            elif history.added:
                # Changed from NULL, which history does not record as deleted
                values[attr.key] = None
            else:
                values[attr.key] = getattr(entity, attr.key)
        copy = self.model(**values)
        make_transient_to_detached(copy)
        return copy

    def _not_found(self, criteria=None) -> EntityNotFoundError:
        return EntityNotFoundError(self.model, criteria)


class Repository(RepositoryCore[T], IRepository[T]):
    """Generic repository over a synchronous Session; subclasses can add custom queries."""

    def __init__(self, session: Session, model: Type[T]):
        super().__init__(session, model)

    def _fetch(self, statement, tracking: bool) -> List[Any]:
        with self._tracker.no_autoflush:
            known = self._known_identities(tracking)
            rows = list(self.session.exec(statement).all())
        return self._materialize(rows, tracking, known)

    def _scalar(self, statement) -> Any:
        with self._tracker.no_autoflush:
            return self.session.exec(statement).one()

    def any(self, expression: Predicate) -> bool:
        return bool(self._scalar(self._any_statement(expression)))

    def first(self, expression: Predicate, tracking: bool = True) -> T:
        entity = self.first_or_default(expression, tracking=tracking)
        if entity is None:
            raise self._not_found(expression)
        return entity

    def first_or_default(self, expression: Predicate, tracking: bool = True) -> Optional[T]:
        rows = self._fetch(self._first_statement(expression), tracking)
        return rows[0] if rows else None

    def get_by_expression(self, expression: Predicate) -> Optional[T]:
        return self.first_or_default(expression, tracking=False)

    def get_by_expression_with_tracking(self, expression: Predicate) -> Optional[T]:
        return self.first_or_default(expression, tracking=True)

    def get_first(self) -> Optional[T]:
        rows = self._fetch(self._first_statement(), tracking=False)
        return rows[0] if rows else None

    def delete_by_expression(self, expression: Predicate) -> None:
        """Stage removal of the first match."""
        entity = self.first_or_default(expression, tracking=True)
        if entity is None:
            raise self._not_found(expression)
        self.delete(entity)

    def delete_by_id(self, id: Any) -> None:
        """Stage removal of the entity with this primary key."""
        with self._tracker.no_autoflush:
            entity = self.session.get(self.model, id)
        if entity is None:
            raise self._not_found(f"id={id!r}")
        self.delete(entity)
