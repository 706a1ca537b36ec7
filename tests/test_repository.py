"""Synchronous repository test cases."""
import pytest
from sqlalchemy.exc import NoResultFound
from sqlmodel import Session, select

from framework.repository import EntityNotFoundError, Query, Repository, UnitOfWork
from apps.users.models import User
from tests.conftest import make_sync_engine


def stored_name(session: Session, email: str):
    """Read a name straight from the database, bypassing the identity map."""
    return session.exec(select(User.name).where(User.email == email)).first()


def stored_count(session: Session) -> int:
    return len(session.exec(select(User.id)).all())


@pytest.fixture
def repo(seeded_sync_session: Session) -> Repository[User]:
    return Repository(seeded_sync_session, User)


@pytest.fixture
def uow(seeded_sync_session: Session) -> UnitOfWork:
    return UnitOfWork(session=seeded_sync_session)


class TestStaging:
    """add / delete / update only take effect on commit."""

    def test_add_then_commit_is_visible(self, repo, uow):
        repo.add(User(name="Barbara", email="barbara@example.com"))
        assert repo.where(User.email == "barbara@example.com").all() == []

        uow.save_changes()

        found = repo.where(User.email == "barbara@example.com").all()
        assert [u.name for u in found] == ["Barbara"]
        assert len(repo.get_all().all()) == 4

    def test_add_range(self, repo, uow):
        repo.add_range([
            User(name="Ken", email="ken@example.com"),
            User(name="Dennis", email="dennis@example.com"),
        ])
        assert uow.save_changes() == 2
        assert stored_count(uow.session) == 5

    def test_delete_then_commit_removes(self, repo, uow):
        user = repo.first(User.email == "ada@example.com")
        repo.delete(user)
        assert repo.any(User.email == "ada@example.com")

        uow.save_changes()

        assert not repo.any(User.email == "ada@example.com")
        assert stored_count(uow.session) == 2

    def test_delete_detached_snapshot(self, repo, uow):
        snapshot = repo.get_by_expression(User.email == "grace@example.com")
        repo.delete(snapshot)
        uow.save_changes()
        assert repo.get_by_expression(User.email == "grace@example.com") is None

    def test_delete_pending_entity_cancels_insert(self, repo, uow):
        user = User(name="Temp", email="temp@example.com")
        repo.add(user)
        repo.delete(user)
        uow.save_changes()
        assert stored_count(uow.session) == 3

    def test_delete_range(self, repo, uow):
        repo.delete_range(repo.where(User.is_active == True).all())  # noqa: E712
        uow.save_changes()
        assert [u.email for u in repo.get_all()] == ["linus@example.com"]

    def test_delete_by_expression(self, repo, uow):
        repo.delete_by_expression(User.name == "Linus")
        uow.save_changes()
        assert not repo.any(User.name == "Linus")

    def test_delete_by_id(self, repo, uow):
        target = repo.first(User.email == "ada@example.com", tracking=False)
        repo.delete_by_id(target.id)
        uow.save_changes()
        assert repo.first_or_default(User.id == target.id) is None

    def test_delete_missing_raises_not_found(self, repo):
        with pytest.raises(EntityNotFoundError):
            repo.delete_by_expression(User.name == "Nobody")
        with pytest.raises(EntityNotFoundError):
            repo.delete_by_id(999)

    def test_update_range(self, repo, uow):
        users = repo.get_all().all()
        for user in users:
            user.is_active = False
        repo.update_range(users)
        uow.save_changes()
        assert not repo.any(User.is_active == True)  # noqa: E712


class TestTracking:
    """Tracked reads flush mutations, non-tracked reads are detached snapshots."""

    def test_tracked_mutation_is_persisted(self, repo, uow):
        user = repo.first(User.email == "ada@example.com", tracking=True)
        user.name = "Ada Lovelace"
        uow.save_changes()
        assert stored_name(uow.session, "ada@example.com") == "Ada Lovelace"

    def test_untracked_mutation_is_not_persisted(self, repo, uow):
        user = repo.get_by_expression(User.email == "ada@example.com")
        user.name = "Changed"
        uow.save_changes()
        assert stored_name(uow.session, "ada@example.com") == "Ada"

    def test_untracked_mutation_persisted_after_update(self, repo, uow):
        user = repo.get_by_expression(User.email == "ada@example.com")
        user.name = "Countess"
        repo.update(user)
        uow.save_changes()
        assert stored_name(uow.session, "ada@example.com") == "Countess"

    def test_untracked_read_of_tracked_entity_is_a_copy(self, repo, uow):
        tracked = repo.get_by_expression_with_tracking(User.email == "grace@example.com")
        snapshot = repo.get_by_expression(User.email == "grace@example.com")
        assert snapshot is not tracked
        assert snapshot.id == tracked.id

        snapshot.name = "Admiral"
        uow.save_changes()
        assert stored_name(uow.session, "grace@example.com") == "Grace"

        repo.update(snapshot)
        assert tracked.name == "Admiral"
        uow.save_changes()
        assert stored_name(uow.session, "grace@example.com") == "Admiral"

    def test_untracked_read_ignores_unsaved_edits_on_tracked_entity(self, repo, uow):
        tracked = repo.first(User.email == "ada.com", tracking=True)
        tracked.name = "Draft"

        snapshot = repo.get_by_expression(User.email == "ada.com")
        assert snapshot.name == "Ada"
        assert snapshot.is_active is True
        assert tracked.name == "Draft"
        assert [u.name for u in repo.where(User.id == tracked.id).all()] == ["Ada"]

    def test_get_all_with_tracking_returns_session_instances(self, repo, uow):
        users = repo.get_all_with_tracking().all()
        assert all(user in uow.session for user in users)
        assert not any(user in uow.session for user in repo.get_all().all())

    def test_update_transient_with_key(self, repo, uow):
        existing = repo.get_by_expression(User.email == "linus@example.com")
        replacement = User(id=existing.id, name="Linus T.", email="linus@example.com", is_active=True)
        repo.update(replacement)
        uow.save_changes()
        assert stored_name(uow.session, "linus@example.com") == "Linus T."
        assert uow.session.exec(select(User.is_active).where(User.id == existing.id)).one() is True


class TestQueries:
    def test_first_on_empty_match_raises(self, repo):
        with pytest.raises(EntityNotFoundError) as exc_info:
            repo.first(User.name == "Nobody")
        assert isinstance(exc_info.value, NoResultFound)

    def test_first_or_default_on_empty_match_returns_none(self, repo):
        assert repo.first_or_default(User.name == "Nobody") is None
        assert repo.first_or_default(User.name == "Nobody", tracking=False) is None
        assert repo.get_by_expression(User.name == "Nobody") is None
        assert repo.get_by_expression_with_tracking(User.name == "Nobody") is None

    def test_any(self, repo):
        assert repo.any(User.name == "Grace")
        assert not repo.any(User.name == "Nobody")

    def test_count_by_partitions_all_rows(self, repo):
        buckets = dict(repo.count_by(User.is_active == True).all())  # noqa: E712
        assert buckets == {True: 2, False: 1}

    def test_count_by_is_lazy(self, repo, uow):
        query = repo.count_by(User.name.startswith("A"))
        repo.add(User(name="Alan", email="alan@example.com"))
        uow.save_changes()
        assert dict(query.all()) == {True: 2, False: 2}

    def test_where_is_lazy_and_reevaluated(self, repo, uow):
        query = repo.where(User.is_active == True)  # noqa: E712
        assert isinstance(query, Query)
        assert query.count() == 2

        repo.add(User(name="Edsger", email="edsger@example.com"))
        uow.save_changes()

        assert query.count() == 3
        assert {u.name for u in query} == {"Ada", "Grace", "Edsger"}

    def test_queries_compose(self, repo):
        names = [u.name for u in repo.get_all().order_by(User.name.desc()).limit(2)]
        assert names == ["Linus", "Grace"]
        assert repo.where(User.is_active == True).where(User.name == "Ada").count() == 1  # noqa: E712

    def test_get_first(self, repo):
        assert repo.get_first() is not None

    def test_get_first_on_empty_table(self, sync_session):
        assert Repository(sync_session, User).get_first() is None


def test_repositories_on_distinct_contexts_do_not_interfere(seeded_sync_session):
    other_engine = make_sync_engine()
    with Session(other_engine, expire_on_commit=False) as other_session:
        first = Repository(seeded_sync_session, User)
        second = Repository(other_session, User)

        second.add(User(name="Solo", email="solo@example.com"))
        UnitOfWork(other_session).save_changes()

        assert first.get_all().count() == 3
        assert second.get_all().count() == 1
        assert not first.any(User.name == "Solo")
    other_engine.dispose()
