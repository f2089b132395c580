# This project was developed with assistance from AI tools.
"""Async engine, session factory and declarative base.

Route handlers receive a session via ``Depends(get_db)``. The session is
never committed here: the request gate commits user provisioning and each
route commits its own unit of work, so a failure anywhere in a handler
rolls back everything the handler wrote.
"""

from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from .config import db_settings

Base = declarative_base()

engine = create_async_engine(
    db_settings.DATABASE_URL,
    echo=db_settings.SQL_ECHO,
    pool_pre_ping=True,
)

SessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    autoflush=False,
    expire_on_commit=False,
)


async def get_db() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: yield a session, rolling back anything uncommitted."""
    async with SessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
