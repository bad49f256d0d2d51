"""Unit tests for the SQLAlchemy-backed record store."""

from datetime import UTC, datetime

import pytest

from custodian.core.exceptions import RecordNotFoundError, RecordStoreUnavailableError
from custodian.db.config import create_engine, create_session_factory
from custodian.db.store import SqlRecordStore
from custodian.retention.store import Collection
from custodian.retention.types import HoldStatus


@pytest.fixture
def sql_store(session_factory) -> SqlRecordStore:
    return SqlRecordStore(session_factory)


class TestSqlRecordStore:
    """Tests for SqlRecordStore."""

    @pytest.mark.asyncio
    async def test_add_and_get(self, sql_store):
        created = datetime(2021, 5, 1, 9, 30, tzinfo=UTC)

        record_id = await sql_store.add(
            Collection.POLICIES,
            {"name": "Travel", "created": created, "status": HoldStatus.ACTIVE},
        )
        record = await sql_store.get(Collection.POLICIES, record_id)

        assert record["id"] == record_id
        assert record["name"] == "Travel"
        assert datetime.fromisoformat(record["created"]) == created
        assert record["status"] == "Active"

    @pytest.mark.asyncio
    async def test_get_missing(self, sql_store):
        with pytest.raises(RecordNotFoundError) as exc_info:
            await sql_store.get(Collection.POLICIES, 404)

        assert exc_info.value.record_id == 404

    @pytest.mark.asyncio
    async def test_collections_are_separate(self, sql_store):
        record_id = await sql_store.add(Collection.POLICIES, {"name": "Travel"})

        with pytest.raises(RecordNotFoundError):
            await sql_store.get(Collection.ACKNOWLEDGEMENTS, record_id)

    @pytest.mark.asyncio
    async def test_update_merges_fields(self, sql_store):
        record_id = await sql_store.add(Collection.LEGAL_HOLDS, {"status": "Active", "reason": "x"})

        await sql_store.update(
            Collection.LEGAL_HOLDS, record_id, {"status": "Released", "id": 999}
        )

        record = await sql_store.get(Collection.LEGAL_HOLDS, record_id)
        assert record == {"status": "Released", "reason": "x", "id": record_id}

    @pytest.mark.asyncio
    async def test_update_missing(self, sql_store):
        with pytest.raises(RecordNotFoundError) as exc_info:
            await sql_store.update(Collection.POLICIES, 7, {"is_legal_hold": True})

        assert exc_info.value.operation == "update"

    @pytest.mark.asyncio
    async def test_delete(self, sql_store):
        record_id = await sql_store.add(Collection.ACKNOWLEDGEMENTS, {"user_id": 1})

        await sql_store.delete(Collection.ACKNOWLEDGEMENTS, record_id)

        with pytest.raises(RecordNotFoundError):
            await sql_store.get(Collection.ACKNOWLEDGEMENTS, record_id)

    @pytest.mark.asyncio
    async def test_query_with_filters(self, sql_store):
        for start, status in (
            (datetime(2026, 1, 1, tzinfo=UTC), "Active"),
            (datetime(2026, 3, 1, tzinfo=UTC), "Active"),
            (datetime(2026, 2, 1, tzinfo=UTC), "Released"),
        ):
            await sql_store.add(Collection.LEGAL_HOLDS, {"status": status, "start_date": start})

        rows = await sql_store.query(
            Collection.LEGAL_HOLDS,
            {"status": HoldStatus.ACTIVE, "start_date__lte": datetime(2026, 6, 1, tzinfo=UTC)},
            order_by="start_date",
            descending=True,
        )

        assert [datetime.fromisoformat(r["start_date"]).month for r in rows] == [3, 1]

    @pytest.mark.asyncio
    async def test_query_limit(self, sql_store):
        for priority in (1, 2, 3):
            await sql_store.add(Collection.RETENTION_POLICIES, {"priority": priority})

        rows = await sql_store.query(
            Collection.RETENTION_POLICIES, order_by="priority", descending=True, limit=2
        )

        assert [r["priority"] for r in rows] == [3, 2]

    @pytest.mark.asyncio
    async def test_database_errors_are_wrapped(self, test_settings):
        """Test that SQLAlchemy failures surface as RecordStoreUnavailableError."""
        engine = create_engine(test_settings)
        try:
            # Tables were never created
            store = SqlRecordStore(create_session_factory(engine))

            with pytest.raises(RecordStoreUnavailableError) as exc_info:
                await store.query(Collection.POLICIES)
        finally:
            await engine.dispose()

        assert not isinstance(exc_info.value, RecordNotFoundError)
        assert exc_info.value.collection == "Policy"
        assert exc_info.value.operation == "query"
