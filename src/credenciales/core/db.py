# src/credenciales/core/db.py
import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from credenciales.core.config import async_retry

logger = logging.getLogger(__name__)


# Async Engine
def _build_async_engine(db_url: str, *, echo: bool = False, pool_size: int = 5) -> AsyncEngine:
    if db_url.startswith("sqlite"):
        # One shared connection so an in-memory database survives across sessions.
        return create_async_engine(
            db_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_async_engine(
        db_url,
        echo=echo,
        pool_size=pool_size,
        max_overflow=5,
        pool_timeout=30,
        pool_recycle=1800,
        pool_pre_ping=True,
    )


class Database:
    """Owns the async engine, the session factory and the request semaphore."""

    def __init__(self, db_url: str, *, echo: bool = False, pool_size: int = 5):
        self.engine: AsyncEngine = _build_async_engine(db_url, echo=echo, pool_size=pool_size)
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        self._pool_size = pool_size
        self._semaphore: Optional[asyncio.Semaphore] = None

    @async_retry(max_attempts=4, base_delay=0.5, max_delay=3.0)
    async def connect(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection validated")

    async def create_all(self) -> None:
        # Table models must be imported before metadata is used.
        from credenciales.models import admin, member, settings  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        logger.info("Database tables ensured")

    async def ping(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.exception("Database ping failed")
            return False

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self._pool_size)
        async with self._semaphore:
            async with self.session_factory() as session:
                try:
                    yield session
                except Exception:
                    await session.rollback()
                    raise

    async def dispose(self) -> None:
        with suppress(Exception):
            await self.engine.dispose()
        logger.info("Database engine disposed")


# Session Provider
async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    database: Database = request.app.state.db
    async with database.session() as session:
        yield session
