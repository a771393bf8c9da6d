"""Database setup shared by tasks."""
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from tracker.config.settings import settings


def create_task_engine():
    """Create an engine for use inside a task."""
    return create_async_engine(
        settings.database_url,
        echo=settings.database_echo,
        poolclass=NullPool,
    )


def create_task_session_maker(engine=None):
    """Create a session maker for use inside a task."""
    if engine is None:
        engine = create_task_engine()
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
