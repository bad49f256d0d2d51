"""Stored record model backing the SQL record store."""

from typing import Any

from sqlalchemy import Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, PortableJSON, TimestampMixin


class StoredItem(Base, TimestampMixin):
    """One record of any collection, with its fields kept as JSON.

    Mirrors a list item in the upstream document platform: the collection
    name plays the role of the list, the JSON column holds the item fields.
    """

    __tablename__ = "stored_items"

    item_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    collection: Mapped[str] = mapped_column(String(50), nullable=False)
    fields: Mapped[dict[str, Any]] = mapped_column(PortableJSON(), nullable=False, default=dict)

    __table_args__ = (Index("idx_stored_items_collection", "collection"),)

    def __repr__(self) -> str:
        return f"<StoredItem(id={self.item_id}, collection={self.collection})>"
