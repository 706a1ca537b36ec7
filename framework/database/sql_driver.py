from sqlmodel import SQLModel
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession
from loguru import logger


class SQLDriver:
    """Async SQLModel engine plus a session factory; one session per unit of work."""

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.engine = create_async_engine(url, echo=echo, future=True)
        self.session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    async def connect(self):
        """Create tables for every model registered on SQLModel metadata."""
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        logger.info(f"Database ready: {self.engine.url.render_as_string(hide_password=True)}")

    async def disconnect(self):
        """Dispose engine connections."""
        await self.engine.dispose()

    async def get_session(self):
        async with self.session_factory() as session:
            yield session
