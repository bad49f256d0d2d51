"""Base repository with common CRUD operations.

Provides a generic repository pattern for SQLAlchemy models with
async support.

Usage:
    from custodian.db.repositories.base import BaseRepository

    class ItemRepository(BaseRepository[StoredItem, int]):
        pass

    repo = ItemRepository(db_session)
    item = await repo.get(item_id)
"""

from typing import Any, Generic, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from custodian.db.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)
PKType = TypeVar("PKType", bound=int | str)


class BaseRepository(Generic[ModelType, PKType]):
    """Generic repository for SQLAlchemy models.

    Type Parameters:
        ModelType: The SQLAlchemy model class
        PKType: The type of the primary key

    Attributes:
        model: The model class
        db: The database session
    """

    model: type[ModelType]

    def __init__(self, db: AsyncSession):
        """Initialize repository with database session.

        Args:
            db: Async SQLAlchemy session
        """
        self.db = db

    def __init_subclass__(cls, **kwargs):
        """Extract model type from generic parameter."""
        super().__init_subclass__(**kwargs)
        for base in getattr(cls, "__orig_bases__", []):
            args = getattr(base, "__args__", None)
            if args and len(args) >= 1:
                first_arg = args[0]
                if isinstance(first_arg, type) and issubclass(first_arg, Base):
                    cls.model = first_arg
                    break

    async def get(self, pk: PKType) -> ModelType | None:
        """Get a single record by primary key."""
        return await self.db.get(self.model, pk)

    async def create(self, obj: ModelType) -> ModelType:
        """Add a new record and flush to obtain its primary key."""
        self.db.add(obj)
        await self.db.flush()
        return obj

    async def update(self, obj: ModelType, updates: dict[str, Any]) -> ModelType:
        """Update a record with given values.

        Args:
            obj: Model instance to update
            updates: Dictionary of attribute: value to update

        Returns:
            Updated model instance
        """
        for attr, value in updates.items():
            if hasattr(obj, attr):
                setattr(obj, attr, value)
        await self.db.flush()
        return obj

    async def delete(self, obj: ModelType) -> None:
        """Delete a record."""
        await self.db.delete(obj)
        await self.db.flush()
