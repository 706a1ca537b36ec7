"""Test config and shared fixtures."""
import pytest
from typing import AsyncGenerator, Generator, List
from httpx import AsyncClient, ASGITransport
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session
from sqlmodel.ext.asyncio.session import AsyncSession

from main import app
from apps.users.models import User


# In-memory SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_SYNC_DATABASE_URL = "sqlite://"


def make_users() -> List[User]:
    return [
        User(name="Ada", email="ada@example.com", is_active=True),
        User(name="Grace", email="grace@example.com", is_active=True),
        User(name="Linus", email="linus@example.com", is_active=False),
    ]


def make_sync_engine():
    engine = create_engine(
        TEST_SYNC_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    return engine


@pytest.fixture
def sync_session() -> Generator[Session, None, None]:
    """Synchronous session on a fresh in-memory database."""
    engine = make_sync_engine()
    with Session(engine, expire_on_commit=False) as session:
        yield session
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def seeded_sync_session(sync_session: Session) -> Session:
    """Sync session holding three committed users and an empty identity map."""
    sync_session.add_all(make_users())
    sync_session.commit()
    sync_session.expunge_all()
    return sync_session


@pytest.fixture(scope="function")
async def async_session() -> AsyncGenerator[AsyncSession, None]:
    """Create async test database session."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    async_session_maker = sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session_maker() as session:
        yield session
        await session.rollback()
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def seeded_async_session(async_session: AsyncSession) -> AsyncSession:
    """Async session holding three committed users and an empty identity map."""
    async_session.add_all(make_users())
    await async_session.commit()
    async_session.expunge_all()
    return async_session


@pytest.fixture
async def client(
    async_session: AsyncSession
) -> AsyncGenerator[AsyncClient, None]:
    """Create test client bound to the test database."""
    from apps.users.api.router import get_db

    async def _get_db():
        yield async_session

    app.dependency_overrides[get_db] = _get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def sample_user(async_session: AsyncSession) -> User:
    """Create sample user."""
    user = User(name="Sample", email="sample@example.com")
    async_session.add(user)
    await async_session.commit()
    await async_session.refresh(user)
    async_session.expunge(user)
    return user
