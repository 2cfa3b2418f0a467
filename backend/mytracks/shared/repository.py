"""
Base repository with common CRUD operations.

Uses SQLAlchemy async session for non-blocking database access.

Usage:
    class TrackRepository(BaseRepository[GPXTrack]):
        def __init__(self, db: AsyncSession):
            super().__init__(db, GPXTrack)

        async def get_by_filename(self, filename: str) -> GPXTrack | None:
            return await self.get_by(filename=filename)
"""

from typing import TypeVar, Generic, Type
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Base repository for database operations.

    Methods flush but never commit: the caller owns the transaction.
    """

    def __init__(self, db: AsyncSession, model: Type[T]):
        """
        Initialize repository.

        Args:
            db: Async database session
            model: SQLAlchemy model class
        """
        self.db = db
        self.model = model

    def _filtered(self, query, **kwargs):
        for key, value in kwargs.items():
            query = query.where(getattr(self.model, key) == value)
        return query

    async def get_by(self, **kwargs) -> T | None:
        """
        Get single entity by arbitrary field values.

        Args:
            **kwargs: Field name-value pairs to filter by

        Returns:
            First matching entity or None
        """
        result = await self.db.execute(
            self._filtered(select(self.model), **kwargs).limit(1)
        )
        return result.scalar_one_or_none()

    async def exists(self, **kwargs) -> bool:
        """Check whether any entity matches the given field values."""
        query = self._filtered(select(self.model.id), **kwargs).limit(1)
        result = await self.db.execute(query)
        return result.first() is not None

    async def add(self, entity: T) -> T:
        """
        Stage a new entity and flush it so generated keys are populated.

        Returns:
            The same entity with its ID assigned
        """
        self.db.add(entity)
        await self.db.flush()
        return entity

    async def delete(self, entity: T) -> None:
        """
        Delete entity.

        Args:
            entity: Entity to delete
        """
        await self.db.delete(entity)
        await self.db.flush()

    async def count(self, **kwargs) -> int:
        """
        Count entities matching criteria.

        Args:
            **kwargs: Field name-value pairs to filter by

        Returns:
            Number of matching entities
        """
        query = self._filtered(select(func.count()).select_from(self.model), **kwargs)
        result = await self.db.execute(query)
        return result.scalar() or 0
