"""SQLAlchemy-backed implementation of the RecordStore protocol.

Every collection lives in the stored_items table with its fields as JSON.
Filtering and ordering are applied in Python after selecting a collection,
using the same semantics as the in-memory store.
"""

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from pydantic_core import to_jsonable_python
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from custodian.core.exceptions import RecordNotFoundError, RecordStoreUnavailableError
from custodian.core.logging import log_store_call
from custodian.db.config import session_scope
from custodian.db.models.items import StoredItem
from custodian.db.repositories.items import ItemRepository
from custodian.retention.store import (
    Collection,
    Fields,
    Filters,
    matches_filter,
    sort_records,
)

logger = structlog.get_logger()


def _to_json_fields(fields: Fields) -> dict[str, Any]:
    return to_jsonable_python({k: v for k, v in fields.items() if k != "id"})


def _as_record(item: StoredItem) -> Fields:
    return {**item.fields, "id": item.item_id}


class SqlRecordStore:
    """Record store persisted through an async SQLAlchemy session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _unit_of_work(
        self,
        operation: str,
        collection: Collection,
        record_id: int | None = None,
    ) -> AsyncGenerator[ItemRepository, None]:
        started = time.perf_counter()
        success = False
        try:
            async with session_scope(self._session_factory) as session:
                yield ItemRepository(session)
            success = True
        except SQLAlchemyError as e:
            raise RecordStoreUnavailableError(
                str(e), collection=collection.value, operation=operation, record_id=record_id
            ) from e
        finally:
            log_store_call(
                logger,
                operation=operation,
                collection=collection.value,
                duration_ms=(time.perf_counter() - started) * 1000,
                success=success,
                record_id=record_id,
            )

    async def get(self, collection: Collection, record_id: int) -> Fields:
        async with self._unit_of_work("get", collection, record_id) as repo:
            item = await repo.get_in_collection(collection.value, record_id)
            if item is None:
                raise RecordNotFoundError(collection.value, record_id)
            return _as_record(item)

    async def query(
        self,
        collection: Collection,
        filters: Filters | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Fields]:
        async with self._unit_of_work("query", collection) as repo:
            items = await repo.list_collection(collection.value)

        records = [_as_record(item) for item in items]
        matched = [r for r in records if matches_filter(r, filters)]
        ordered = sort_records(matched, order_by, descending)
        return ordered[:limit] if limit is not None else ordered

    async def update(self, collection: Collection, record_id: int, fields: Fields) -> None:
        async with self._unit_of_work("update", collection, record_id) as repo:
            item = await repo.get_in_collection(collection.value, record_id)
            if item is None:
                raise RecordNotFoundError(collection.value, record_id, operation="update")
            # Reassign so the JSON column is flagged dirty
            await repo.update(item, {"fields": {**item.fields, **_to_json_fields(fields)}})

    async def add(self, collection: Collection, fields: Fields) -> int:
        async with self._unit_of_work("add", collection) as repo:
            item = await repo.create(
                StoredItem(collection=collection.value, fields=_to_json_fields(fields))
            )
            return item.item_id

    async def delete(self, collection: Collection, record_id: int) -> None:
        async with self._unit_of_work("delete", collection, record_id) as repo:
            item = await repo.get_in_collection(collection.value, record_id)
            if item is None:
                raise RecordNotFoundError(collection.value, record_id, operation="delete")
            await repo.delete(item)
