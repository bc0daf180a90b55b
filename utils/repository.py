"""
Repository pattern implementation for SQLAlchemy.

This module provides the base repository class that concrete repositories
build their domain operations on.
"""

from collections.abc import Sequence
from typing import Generic, Optional, Type, TypeAlias, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

# Type variables for generic repository
T = TypeVar("T")
ID = TypeVar("ID")

# Type aliases
EntityType: TypeAlias = Type[T]
SessionMaker: TypeAlias = async_sessionmaker[AsyncSession]


class BaseRepository(Generic[T, ID]):
    """Base repository for SQLAlchemy models.

    This class provides the common lookups and deletes for SQLAlchemy models with a
    single-column primary key.

    Attributes:
        session_maker: Factory function to create database sessions.
        entity_type: The SQLAlchemy model class this repository manages.
    """

    def __init__(self, session_maker: SessionMaker, entity_type: EntityType):
        """Initialize the repository.

        Args:
            session_maker: Factory function to create database sessions.
            entity_type: The SQLAlchemy model class this repository manages.
        """
        self.session_maker = session_maker
        self.entity_type = entity_type
        self.primary_key = entity_type.__mapper__.primary_key[0]

    async def get_by_id(self, entity_id: ID) -> Optional[T]:
        """Get an entity by its primary key.

        Args:
            entity_id: The primary key of the entity to retrieve.

        Returns:
            The entity if found, None otherwise.
        """
        async with self.session_maker() as session:
            return await session.get(self.entity_type, entity_id)

    async def get_ids(self) -> Sequence[ID]:
        """Get the primary keys of all entities, sorted."""
        async with self.session_maker() as session:
            result = await session.execute(
                select(self.primary_key).order_by(self.primary_key)
            )
            return result.scalars().all()

    async def delete(self, entity_id: ID) -> bool:
        """Delete an entity by its primary key.

        Args:
            entity_id: The primary key of the entity to delete.

        Returns:
            True if the entity was deleted, False otherwise.
        """
        async with self.session_maker() as session:
            stmt = delete(self.entity_type).where(self.primary_key == entity_id)
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount > 0

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.entity_type.__name__})"
