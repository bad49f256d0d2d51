"""Repositories for database access."""

from .base import BaseRepository
from .items import ItemRepository

__all__ = ["BaseRepository", "ItemRepository"]
