import threading
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from heallink.config import Settings


class Base(DeclarativeBase):
    pass


_seq_lock = threading.Lock()
_last_seq = 0


def next_insertion_seq() -> int:
    """Strictly increasing within a process; nanoseconds since the epoch while the clock moves forward."""
    global _last_seq
    with _seq_lock:
        _last_seq = max(time.time_ns(), _last_seq + 1)
        return _last_seq


class Database:
    """Owns the async engine and session factory for one process."""

    def __init__(self, settings: Settings):
        engine_kwargs = {"echo": settings.DB_ECHO}
        if not settings.is_sqlite:
            engine_kwargs.update(pool_size=20, max_overflow=10)
        self.engine = create_async_engine(settings.DATABASE_URL, **engine_kwargs)
        self.sessionmaker = async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self.sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    async with request.app.state.db.session() as session:
        yield session
