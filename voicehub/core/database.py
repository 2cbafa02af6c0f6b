"""Async database engine and session factory.

The engine is owned by the application lifespan: ``main.lifespan`` builds a
``Database`` on startup, stores it on ``app.state.database`` and disposes it on
shutdown. Request handlers receive sessions through ``get_session``.
"""

from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from voicehub.core.config import Settings


class Database:
    """Engine + session factory pair with an explicit lifecycle."""

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self.session_factory = sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        kwargs = {}
        if not settings.database_url.startswith("sqlite"):
            kwargs = {
                "pool_size": settings.db_pool_size,
                "max_overflow": settings.db_max_overflow,
            }
        engine = create_async_engine(settings.database_url, echo=False, **kwargs)
        return cls(engine)

    async def create_all(self) -> None:
        """Create all tables. Use Alembic migrations in production."""
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields an async DB session."""
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        yield session
