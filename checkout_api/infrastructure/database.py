"""Database configuration and session management.

Provides the async SQLAlchemy engine, the session factory and the
declarative base. Application services open their own transactions from
the factory so that a conflicting unit of work can be retried as a whole.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from checkout_api.infrastructure.config import settings


class Base(DeclarativeBase):
    """Base class for models."""


def create_engine_from_url(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine for ``url``."""
    return create_async_engine(url, echo=echo, pool_pre_ping=True)


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to ``bind``."""
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


# Create async engine
engine = create_engine_from_url(settings.database_url, echo=settings.debug)

# Session factory
async_session_factory = create_session_factory(engine)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the session factory (overridden in tests)."""
    return async_session_factory
