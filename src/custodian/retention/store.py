"""Collaborator contracts for the retention engine.

The engine talks to three external collaborators through these protocols:
- RecordStore: the remote store holding governed records, retention
  policies, legal holds and archive copies
- NotificationSender: delivers Notify-type retention actions

In-memory implementations are provided for development and tests. The
SQLAlchemy-backed store lives in custodian.db.store.

Filters are dictionaries of field name to value. A bare field name means
equality; the suffixes __ne, __lt, __lte, __gt, __gte and __in select the
corresponding comparison:

    await store.query(
        Collection.LEGAL_HOLDS,
        {"status": "Active", "start_date__lte": now},
        order_by="start_date",
        descending=True,
    )
"""

import copy
from datetime import datetime
from enum import Enum
from typing import Any, Protocol

import structlog

from custodian.core.exceptions import RecordNotFoundError
from custodian.retention.types import EntityType, as_utc

logger = structlog.get_logger()

Fields = dict[str, Any]
Filters = dict[str, Any]


class Collection(str, Enum):
    """Record collections the engine reads and writes."""

    POLICIES = "Policy"
    ACKNOWLEDGEMENTS = "Acknowledgement"
    RETENTION_POLICIES = "RetentionPolicy"
    LEGAL_HOLDS = "LegalHold"
    RETENTION_ARCHIVE = "RetentionArchive"

    @classmethod
    def for_entity(cls, entity_type: EntityType) -> "Collection":
        """Get the collection holding records of a governed entity type."""
        if entity_type == EntityType.POLICY:
            return cls.POLICIES
        return cls.ACKNOWLEDGEMENTS


class RecordStore(Protocol):
    """Protocol for the record store collaborator.

    Records are plain field dictionaries; every returned record carries its
    store-assigned integer "id".
    """

    async def get(self, collection: Collection, record_id: int) -> Fields:
        """Fetch one record.

        Raises:
            RecordNotFoundError: If the id does not exist
            RecordStoreUnavailableError: On any I/O failure
        """
        ...

    async def query(
        self,
        collection: Collection,
        filters: Filters | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Fields]:
        """Fetch records matching all filters."""
        ...

    async def update(self, collection: Collection, record_id: int, fields: Fields) -> None:
        """Merge fields into an existing record."""
        ...

    async def add(self, collection: Collection, fields: Fields) -> int:
        """Create a record and return its id."""
        ...

    async def delete(self, collection: Collection, record_id: int) -> None:
        """Physically remove a record."""
        ...


class NotificationSender(Protocol):
    """Protocol for the notification collaborator."""

    async def send(self, recipients: list[str], subject: str, body: str) -> None:
        """Deliver a notification to the given recipients."""
        ...


# =============================================================================
# Filter Evaluation
# =============================================================================

_LOOKUPS = ("ne", "lte", "lt", "gte", "gt", "in")


def _split_lookup(key: str) -> tuple[str, str]:
    name, sep, op = key.rpartition("__")
    if sep and op in _LOOKUPS:
        return name, op
    return key, "eq"


def _coerce(value: Any, reference: Any) -> Any:
    """Bring a stored value into the domain of the filter value."""
    if isinstance(reference, datetime):
        if isinstance(value, str):
            try:
                value = datetime.fromisoformat(value)
            except ValueError:
                return value
        if isinstance(value, datetime):
            return as_utc(value)
    return value


def _normalize(reference: Any) -> Any:
    if isinstance(reference, datetime):
        return as_utc(reference)
    if isinstance(reference, Enum):
        return reference.value
    return reference


def matches_filter(fields: Fields, filters: Filters | None) -> bool:
    """Check whether a record satisfies every filter clause.

    Range comparisons against a missing (None) field never match.
    """
    if not filters:
        return True

    for key, expected in filters.items():
        name, op = _split_lookup(key)
        if op == "in":
            candidates = {_normalize(v) for v in expected}
            if _normalize(fields.get(name)) not in candidates:
                return False
            continue

        reference = _normalize(expected)
        actual = _coerce(fields.get(name), reference)
        if isinstance(actual, Enum):
            actual = actual.value

        if op == "eq":
            if actual != reference:
                return False
        elif op == "ne":
            if actual == reference:
                return False
        else:
            if actual is None or reference is None:
                return False
            try:
                if op == "lt" and not actual < reference:
                    return False
                if op == "lte" and not actual <= reference:
                    return False
                if op == "gt" and not actual > reference:
                    return False
                if op == "gte" and not actual >= reference:
                    return False
            except TypeError:
                return False
    return True


def sort_records(records: list[Fields], order_by: str | None, descending: bool) -> list[Fields]:
    """Order records by a field, keeping records missing the field last."""
    if not order_by:
        return sorted(records, key=lambda r: r["id"], reverse=descending)

    present = [r for r in records if r.get(order_by) is not None]
    missing = [r for r in records if r.get(order_by) is None]
    present.sort(key=lambda r: _normalize(r[order_by]), reverse=descending)
    return present + missing


async def query_all(
    store: RecordStore,
    collection: Collection,
    filters: Filters | None = None,
    *,
    page_size: int,
) -> list[Fields]:
    """Read every matching record in id order, ``page_size`` records per query.

    A page shorter than ``page_size`` ends the read, so a collection that
    fits in one page costs one query.
    """
    records: list[Fields] = []
    last_id = 0
    while True:
        page = await store.query(
            collection,
            {**(filters or {}), "id__gt": last_id},
            order_by="id",
            limit=page_size,
        )
        records.extend(page)
        if len(page) < page_size:
            break
        last_id = page[-1]["id"]

    if len(records) > page_size:
        logger.debug(
            "record_pages_read",
            collection=collection.value,
            records=len(records),
            page_size=page_size,
        )
    return records


# =============================================================================
# In-Memory Implementations
# =============================================================================


class InMemoryRecordStore:
    """Record store held in process memory.

    Suitable for development and tests. Every call is recorded in ``calls``
    as ``(operation, collection, record_id)`` so tests can assert on the
    exact mutation sequence.
    """

    MUTATIONS = frozenset({"update", "add", "delete"})

    def __init__(self) -> None:
        self._data: dict[Collection, dict[int, Fields]] = {c: {} for c in Collection}
        self._next_id: dict[Collection, int] = {c: 1 for c in Collection}
        self.calls: list[tuple[str, Collection, int | None]] = []

    @property
    def mutation_calls(self) -> list[tuple[str, Collection, int | None]]:
        """Recorded update/add/delete calls (for testing)."""
        return [call for call in self.calls if call[0] in self.MUTATIONS]

    def seed(self, collection: Collection, fields: Fields) -> int:
        """Insert a record without recording a call (for testing)."""
        record_id = fields.get("id") or self._next_id[collection]
        self._next_id[collection] = max(self._next_id[collection], record_id + 1)
        self._data[collection][record_id] = {**copy.deepcopy(fields), "id": record_id}
        return record_id

    def snapshot(self, collection: Collection) -> list[Fields]:
        """All records in a collection, by id (for testing)."""
        return [copy.deepcopy(self._data[collection][k]) for k in sorted(self._data[collection])]

    async def get(self, collection: Collection, record_id: int) -> Fields:
        self.calls.append(("get", collection, record_id))
        record = self._data[collection].get(record_id)
        if record is None:
            raise RecordNotFoundError(collection.value, record_id)
        return copy.deepcopy(record)

    async def query(
        self,
        collection: Collection,
        filters: Filters | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Fields]:
        self.calls.append(("query", collection, None))
        matched = [r for r in self._data[collection].values() if matches_filter(r, filters)]
        ordered = sort_records(matched, order_by, descending)
        if limit is not None:
            ordered = ordered[:limit]
        return [copy.deepcopy(r) for r in ordered]

    async def update(self, collection: Collection, record_id: int, fields: Fields) -> None:
        self.calls.append(("update", collection, record_id))
        record = self._data[collection].get(record_id)
        if record is None:
            raise RecordNotFoundError(collection.value, record_id, operation="update")
        record.update(copy.deepcopy({k: v for k, v in fields.items() if k != "id"}))

    async def add(self, collection: Collection, fields: Fields) -> int:
        record_id = self._next_id[collection]
        self._next_id[collection] += 1
        self.calls.append(("add", collection, record_id))
        self._data[collection][record_id] = {**copy.deepcopy(fields), "id": record_id}
        return record_id

    async def delete(self, collection: Collection, record_id: int) -> None:
        self.calls.append(("delete", collection, record_id))
        if self._data[collection].pop(record_id, None) is None:
            raise RecordNotFoundError(collection.value, record_id, operation="delete")


class InMemoryNotificationSender:
    """Notification sender that records messages instead of delivering them."""

    def __init__(self) -> None:
        self.sent: list[tuple[list[str], str, str]] = []

    async def send(self, recipients: list[str], subject: str, body: str) -> None:
        self.sent.append((list(recipients), subject, body))
        logger.debug("notification_recorded", recipients=len(recipients), subject=subject)
