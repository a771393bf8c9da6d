"""
Base repository.

Generic CRUD operations for all repositories.
"""

from collections.abc import Iterator, Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.config.constants import SQL_IN_CHUNK_SIZE
from tracker.models.base import Base

# Generic type for model
ModelType = TypeVar("ModelType", bound=Base)


def chunked(ids: Sequence[str], size: int = SQL_IN_CHUNK_SIZE) -> Iterator[Sequence[str]]:
    """Split ids for IN (...) queries."""
    for i in range(0, len(ids), size):
        yield ids[i:i + size]


class BaseRepository(Generic[ModelType]):
    """
    Base repository with generic CRUD operations.

    Provides async database operations for any SQLAlchemy model.

    Type Parameters:
        ModelType: SQLAlchemy model class

    Example:
        class AccountRepository(BaseRepository[Account]):
            def __init__(self, session: AsyncSession):
                super().__init__(Account, session)
    """

    def __init__(
        self, model: type[ModelType], session: AsyncSession
    ) -> None:
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            session: Async database session
        """
        self.model = model
        self.session = session

    async def get_by_id(self, id: Any) -> ModelType | None:
        """
        Get entity by primary key.

        Args:
            id: Primary key value (string ids for accounts and snapshots)

        Returns:
            Entity or None if not found
        """
        return await self.session.get(self.model, id)

    async def get_by(
        self, **filters: Any
    ) -> ModelType | None:
        """
        Get single entity by filters.

        Args:
            **filters: Column filters

        Returns:
            First matching entity or None
        """
        stmt = select(self.model).filter_by(**filters)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert(self, entity: ModelType) -> ModelType:
        """
        Insert or overwrite an entity by primary key.

        Args:
            entity: Detached entity carrying the full row state

        Returns:
            The session-bound instance
        """
        return await self.session.merge(entity)
