"""Unit tests for retention type definitions."""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from custodian.retention.types import (
    AcknowledgementRecord,
    AppliesTo,
    BatchResult,
    EntityType,
    EntryFailure,
    EntrySuccess,
    HoldStatus,
    LegalHold,
    LegalHoldRequest,
    PolicyRecord,
    RetentionCategory,
    RetentionPolicy,
    ScheduleEntry,
    as_utc,
)

CREATED = datetime(2020, 1, 1, tzinfo=UTC)


def _entry(expiry: datetime | None, days: int) -> ScheduleEntry:
    return ScheduleEntry(
        entity_type=EntityType.POLICY,
        entity_id=1,
        entity_name="Policy 1",
        retention_policy_id=1,
        retention_policy_name="Standard",
        retention_category=RetentionCategory.STANDARD,
        retention_period_days=1095,
        created_date=CREATED,
        retention_start_date=CREATED,
        retention_expiry_date=expiry,
        days_until_expiry=days,
    )


class TestAsUtc:
    """Tests for as_utc."""

    def test_naive_is_utc(self):
        assert as_utc(datetime(2026, 1, 1)) == datetime(2026, 1, 1, tzinfo=UTC)

    def test_converts_offset(self):
        value = datetime(2026, 1, 1, 2, 0, tzinfo=timezone(timedelta(hours=2)))

        assert as_utc(value) == datetime(2026, 1, 1, 0, 0, tzinfo=UTC)
        assert as_utc(value).tzinfo == UTC

    def test_none(self):
        assert as_utc(None) is None


class TestAppliesTo:
    """Tests for AppliesTo.covers."""

    def test_all_covers_everything(self):
        assert AppliesTo.ALL.covers(EntityType.POLICY)
        assert AppliesTo.ALL.covers(EntityType.ACKNOWLEDGEMENT)

    def test_specific_scope(self):
        assert AppliesTo.POLICY.covers(EntityType.POLICY)
        assert not AppliesTo.POLICY.covers(EntityType.ACKNOWLEDGEMENT)

    def test_audit_log_covers_no_governed_type(self):
        assert not AppliesTo.AUDIT_LOG.covers(EntityType.POLICY)
        assert not AppliesTo.AUDIT_LOG.covers(EntityType.ACKNOWLEDGEMENT)


class TestRetentionPolicy:
    """Tests for RetentionPolicy validation."""

    def _policy(self, **overrides) -> RetentionPolicy:
        values = {
            "name": "Standard",
            "applies_to": AppliesTo.ALL,
            "retention_category": RetentionCategory.STANDARD,
            "retention_period_days": 1095,
        }
        values.update(overrides)
        return RetentionPolicy(**values)

    @pytest.mark.parametrize("days", [0, -5])
    def test_invalid_period(self, days):
        with pytest.raises(ValidationError):
            self._policy(retention_period_days=days)

    def test_indefinite_period(self):
        policy = self._policy(retention_period_days=-1)

        assert policy.is_indefinite

    def test_negative_notify_lead(self):
        with pytest.raises(ValidationError):
            self._policy(notify_before_days=-1)

    def test_empty_name(self):
        with pytest.raises(ValidationError):
            self._policy(name="")

    def test_defaults(self):
        policy = self._policy()

        assert policy.id is None
        assert policy.is_active is True
        assert policy.priority == 10
        assert policy.data_classifications == []
        assert not policy.is_indefinite

    def test_notification_recipients_skip_blank(self):
        policy = self._policy(notify_emails=["a@example.com", "", "b@example.com"])

        assert policy.notification_recipients == ["a@example.com", "b@example.com"]


class TestGovernedRecords:
    """Tests for governed record schemas."""

    def test_policy_record_ignores_unknown_fields(self):
        record = PolicyRecord(id=1, created=CREATED, owner="someone")

        assert not hasattr(record, "owner")

    def test_policy_record_none_lists(self):
        record = PolicyRecord(id=1, created=CREATED, regulatory_frameworks=None)

        assert record.regulatory_frameworks == []

    def test_policy_record_created_required(self):
        with pytest.raises(ValidationError):
            PolicyRecord(id=1)

    def test_iso_dates_normalized(self):
        record = PolicyRecord(id=1, created="2021-03-04T10:00:00+02:00")

        assert record.created == datetime(2021, 3, 4, 8, 0, tzinfo=UTC)

    def test_policy_display_name(self):
        assert PolicyRecord(id=1, created=CREATED, name="Travel").display_name == "Travel"
        assert PolicyRecord(id=1, created=CREATED, title="Doc").display_name == "Doc"
        assert PolicyRecord(id=5, created=CREATED).display_name == "Policy 5"

    def test_acknowledgement_display_name(self):
        with_email = AcknowledgementRecord(id=3, created=CREATED, user_email="ana@example.com")

        assert with_email.display_name == "Acknowledgement 3 (ana@example.com)"
        assert AcknowledgementRecord(id=4, created=CREATED).display_name == "Acknowledgement 4"


class TestLegalHold:
    """Tests for legal hold models."""

    def test_is_active(self):
        hold = LegalHold(
            entity_type=EntityType.POLICY,
            entity_id=1,
            reason="Litigation",
            requested_by_id=1,
            start_date=CREATED,
        )

        assert hold.is_active
        assert not hold.model_copy(update={"status": HoldStatus.RELEASED}).is_active

    def test_request_requires_reason(self):
        with pytest.raises(ValidationError):
            LegalHoldRequest(entity_type=EntityType.POLICY, entity_ids=[1], reason="")

    def test_request_start_defaults_to_now(self):
        before = datetime.now(UTC)

        request = LegalHoldRequest(entity_type=EntityType.POLICY, entity_ids=[1], reason="x")

        assert request.start_date >= before
        assert request.start_date.tzinfo == UTC


class TestScheduleEntry:
    """Tests for ScheduleEntry."""

    def test_expired_when_due(self):
        assert _entry(CREATED, 0).is_expired
        assert _entry(CREATED, -10).is_expired

    def test_not_expired_when_future(self):
        assert not _entry(CREATED, 1).is_expired

    def test_indefinite_never_expires(self):
        entry = _entry(None, -1)

        assert entry.is_indefinite
        assert not entry.is_expired


class TestBatchResult:
    """Tests for BatchResult."""

    def test_record_collects_failures(self):
        result = BatchResult(dry_run=False)

        result.record(EntrySuccess(EntityType.POLICY, 1, "Archive"))
        result.record(EntryFailure(EntityType.ACKNOWLEDGEMENT, 2, "Failed to process"))

        assert len(result.outcomes) == 2
        assert result.errors == ["Failed to process"]
        assert not result.succeeded

    def test_counters(self):
        result = BatchResult(dry_run=True, total_processed=3, archived=1, review_required=2)

        assert result.counters() == {
            "dry_run": True,
            "total_processed": 3,
            "archived": 1,
            "deleted": 0,
            "review_required": 2,
            "notifications_sent": 0,
            "skipped_legal_hold": 0,
            "errors": [],
        }
        assert result.succeeded
