"""Repository for stored collection items."""

from sqlalchemy import select

from custodian.db.models.items import StoredItem
from custodian.db.repositories.base import BaseRepository


class ItemRepository(BaseRepository[StoredItem, int]):
    """Data access for StoredItem rows."""

    async def get_in_collection(self, collection: str, item_id: int) -> StoredItem | None:
        """Get an item only if it belongs to the given collection."""
        item = await self.get(item_id)
        if item is None or item.collection != collection:
            return None
        return item

    async def list_collection(self, collection: str) -> list[StoredItem]:
        """All items of a collection, ordered by id."""
        stmt = (
            select(StoredItem)
            .where(StoredItem.collection == collection)
            .order_by(StoredItem.item_id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
