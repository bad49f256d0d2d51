"""Tests for retention policy configuration."""

from datetime import UTC, datetime

import pytest

from custodian.core.exceptions import MalformedPolicyConfigError, RecordNotFoundError
from custodian.db.models.audit import AuditEventType
from custodian.retention.matcher import match_policy
from custodian.retention.policies import (
    RetentionPolicyDraft,
    RetentionPolicyService,
    create_default_policies,
)
from custodian.retention.store import Collection
from custodian.retention.types import (
    AppliesTo,
    EntityType,
    ExpiryAction,
    PolicyRecord,
    RetentionCategory,
    RetentionStartEvent,
)


@pytest.fixture
def policy_service(store, audit, actors) -> RetentionPolicyService:
    return RetentionPolicyService(store, audit, actors)


class TestCreatePolicy:
    """Tests for RetentionPolicyService.create_policy."""

    @pytest.mark.asyncio
    async def test_defaults_applied(self, policy_service, operator) -> None:
        """Test that unset fields take the configured defaults."""
        policy = await policy_service.create_policy(
            RetentionPolicyDraft(
                name="Extended records",
                applies_to=AppliesTo.POLICY,
                retention_category=RetentionCategory.EXTENDED,
            )
        )

        assert policy.id is not None
        assert policy.retention_period_days == 2555
        assert policy.retention_start_event == RetentionStartEvent.CREATED
        assert policy.action_on_expiry == ExpiryAction.REVIEW
        assert policy.priority == 10
        assert policy.exclude_on_legal_hold is True
        assert policy.exclude_compliance_relevant is False
        assert policy.is_active is True
        assert policy.created_by_id == operator.id
        assert policy.created_date is not None

    @pytest.mark.asyncio
    async def test_legal_category_is_indefinite(self, policy_service) -> None:
        policy = await policy_service.create_policy(
            RetentionPolicyDraft(
                name="Litigation", applies_to=AppliesTo.ALL, retention_category=RetentionCategory.LEGAL
            )
        )

        assert policy.retention_period_days == -1
        assert policy.is_indefinite

    @pytest.mark.asyncio
    async def test_explicit_values_kept(self, policy_service) -> None:
        policy = await policy_service.create_policy(
            RetentionPolicyDraft(
                name="Short",
                applies_to=AppliesTo.ACKNOWLEDGEMENT,
                retention_period_days=90,
                action_on_expiry=ExpiryAction.DELETE,
                priority=25,
            )
        )

        assert policy.retention_period_days == 90
        assert policy.action_on_expiry == ExpiryAction.DELETE
        assert policy.priority == 25

    @pytest.mark.asyncio
    async def test_stored_and_audited(self, policy_service, store, audit_sink) -> None:
        policy = await policy_service.create_policy(
            RetentionPolicyDraft(name="Audited", applies_to=AppliesTo.POLICY)
        )

        [stored] = store.snapshot(Collection.RETENTION_POLICIES)
        assert stored["name"] == "Audited"
        assert stored["id"] == policy.id

        [event] = audit_sink.of_type(AuditEventType.SETTINGS_CHANGED)
        assert event.entity_id == policy.id
        assert event.description == 'Retention policy "Audited" created'

    @pytest.mark.asyncio
    async def test_invalid_period_rejected(self, policy_service, store) -> None:
        with pytest.raises(MalformedPolicyConfigError):
            await policy_service.create_policy(
                RetentionPolicyDraft(name="Bad", applies_to=AppliesTo.ALL, retention_period_days=-5)
            )

        assert store.snapshot(Collection.RETENTION_POLICIES) == []

    @pytest.mark.asyncio
    async def test_zero_priority_kept(self, policy_service) -> None:
        """Test that priority 0 is stored as given, not replaced by the default."""
        catch_all = await policy_service.create_policy(
            RetentionPolicyDraft(
                name="Catch-all",
                applies_to=AppliesTo.ALL,
                priority=0,
                action_on_expiry=ExpiryAction.DELETE,
            )
        )
        specific = await policy_service.create_policy(
            RetentionPolicyDraft(
                name="Policy archive",
                applies_to=AppliesTo.POLICY,
                priority=5,
                action_on_expiry=ExpiryAction.ARCHIVE,
            )
        )

        assert catch_all.priority == 0

        policies = await policy_service.load_active_policies()
        assert [p.id for p in policies] == [specific.id, catch_all.id]

        record = PolicyRecord(id=1, created=datetime(2016, 1, 1, tzinfo=UTC))
        matched = match_policy(EntityType.POLICY, record, policies)
        assert matched.action_on_expiry == ExpiryAction.ARCHIVE

    @pytest.mark.asyncio
    async def test_zero_period_rejected_not_defaulted(self, policy_service) -> None:
        with pytest.raises(MalformedPolicyConfigError):
            await policy_service.create_policy(
                RetentionPolicyDraft(name="Zero", applies_to=AppliesTo.ALL, retention_period_days=0)
            )


class TestLoadPolicies:
    """Tests for loading policies."""

    @pytest.mark.asyncio
    async def test_active_policies_in_priority_order(self, policy_service, seed_policy) -> None:
        seed_policy(name="low", priority=5)
        seed_policy(name="high", priority=50)
        seed_policy(name="off", priority=99, is_active=False)
        seed_policy(name="mid-b", priority=20)
        seed_policy(name="mid-a", priority=20)

        policies = await policy_service.load_active_policies()

        assert [p.name for p in policies] == ["high", "mid-b", "mid-a", "low"]

    @pytest.mark.asyncio
    async def test_get_policy(self, policy_service, seed_policy) -> None:
        seeded = seed_policy(name="lookup")

        assert (await policy_service.get_policy(seeded.id)).name == "lookup"

        with pytest.raises(RecordNotFoundError):
            await policy_service.get_policy(999)

    @pytest.mark.asyncio
    async def test_install_default_policies_once(self, policy_service, store) -> None:
        created = await policy_service.install_default_policies()

        assert len(created) == len(create_default_policies())
        assert await policy_service.install_default_policies() == []
        assert len(store.snapshot(Collection.RETENTION_POLICIES)) == len(created)


class TestDefaultPolicies:
    """Tests for the shipped default policies."""

    def test_defaults_are_valid_and_unsaved(self) -> None:
        policies = create_default_policies()

        assert len(policies) >= 4
        assert all(p.id is None for p in policies)
        assert len({p.name for p in policies}) == len(policies)

    def test_acknowledgements_are_purged(self) -> None:
        [ack_policy] = [p for p in create_default_policies() if p.applies_to == AppliesTo.ACKNOWLEDGEMENT]

        assert ack_policy.action_on_expiry == ExpiryAction.DELETE
        assert ack_policy.retention_start_event == RetentionStartEvent.ACKNOWLEDGED

    def test_legal_records_indefinite(self) -> None:
        legal = [p for p in create_default_policies() if p.retention_category == RetentionCategory.LEGAL]

        assert legal
        assert all(p.is_indefinite for p in legal)
