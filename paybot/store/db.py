"""Database models and helpers."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncGenerator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import Field, SQLModel


class Contact(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    address: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Database:
    """Lightweight async database wrapper."""

    def __init__(self, url: str) -> None:
        self.url = url
        self._engine: AsyncEngine | None = None
        self._session_maker: sessionmaker | None = None

    def connect(self) -> None:
        """Initialise engine and sessionmaker."""
        if self._engine:
            return

        url = make_url(self.url)
        if url.get_backend_name() == "sqlite":
            database = url.database
            if database and database != ":memory:":
                Path(database).expanduser().resolve().parent.mkdir(
                    parents=True, exist_ok=True
                )

        self._engine = create_async_engine(self.url, echo=False, future=True)
        self._session_maker = sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def init_models(self) -> None:
        """Create tables if they do not exist."""
        if not self._engine:
            raise RuntimeError("Database engine is not initialised")

        async with self._engine.begin() as conn:  # pragma: no cover - DDL
            await conn.run_sync(SQLModel.metadata.create_all)

    async def dispose(self) -> None:
        """Close pooled connections."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_maker = None

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Return an async session context."""
        if not self._session_maker:
            raise RuntimeError("Database session maker is not initialised")

        async with self._session_maker() as session:
            yield session


__all__ = ["Database", "Contact"]
