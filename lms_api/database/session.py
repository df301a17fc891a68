"""
Database Session Management

Manages SQLAlchemy sessions for PostgreSQL.

- Async engine + AsyncSession for request handlers (FastAPI async).
- Sync engine + Session for Alembic migrations and scripts.

Usage (async - request handlers):
    from lms_api.database.session import get_db
    async def handler(db: AsyncSession = Depends(get_db)):
        result = await db.execute(select(User).where(...))

Usage (sync - migrations, scripts):
    from lms_api.database.session import get_session
    with get_session() as session:
        users = session.query(User).all()

Each request owns one AsyncSession: it is committed when the handler
returns, rolled back when it raises, and closed (connection returned to
the pool) on every path.
"""

from contextlib import contextmanager
from typing import AsyncGenerator, Generator

from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from lms_api.core import config

# ── Sync engine (Alembic, scripts) ──
engine = create_engine(
    config.DATABASE_URL,
    pool_pre_ping=True,
    pool_size=config.DB_POOL_SIZE,
    max_overflow=config.DB_MAX_OVERFLOW,
    echo=config.DB_ECHO,
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,
)

# ── Async engine (request handlers) ──
async_engine = create_async_engine(
    config.ASYNC_DATABASE_URL,
    pool_pre_ping=True,
    pool_size=config.DB_POOL_SIZE,
    max_overflow=config.DB_MAX_OVERFLOW,
    echo=config.DB_ECHO,
)

AsyncSessionLocal = async_sessionmaker(
    async_engine,
    class_=AsyncSession,
    autoflush=False,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Sync context manager for scripts and migrations."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Async FastAPI dependency: yields AsyncSession."""
    session = AsyncSessionLocal()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def dispose_engines() -> None:
    """Release pooled connections at shutdown."""
    await async_engine.dispose()
    engine.dispose()
