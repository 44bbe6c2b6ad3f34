"""Async SQLAlchemy engine, session factory and the request-scoped session.

Every model module declares its tables on ``Base``; ``workforce.models``
imports them all so Alembic and the test suite see the full metadata.
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from workforce.config import settings

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.SQL_ECHO,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Declarative base shared by every tenant-owned table."""


async def get_db() -> AsyncSession:
    """Yield one session per request.

    The whole request runs in one transaction: committed when the endpoint
    returns, rolled back if anything raises.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
