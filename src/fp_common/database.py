"""Async database plumbing: the engine, the session factory and the request-scoped session.

Repositories issue raw SQL on the session they are handed; the ORM `Base` only
backs the mappings that alembic compares against the hand-written migrations.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from config.settings import settings


class Base(DeclarativeBase):
    """Declarative base shared by the payment, booking and trainer-offert mappings."""

    pass


engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=20,
    max_overflow=10,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one AsyncSession per request, closed afterwards.

    Services own the transaction on this session (commit / rollback).
    """
    async with async_session_factory() as session:
        yield session
