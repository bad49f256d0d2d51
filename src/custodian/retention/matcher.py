"""Retention policy matching.

Selects the single retention policy that governs a record. Policies are
evaluated in descending priority; among equal priorities the lowest policy
id wins, and unsaved policies (no id) come last.
"""

from collections.abc import Iterable, Sequence

from custodian.retention.mapping import GovernedRecordModel
from custodian.retention.types import EntityType, PolicyRecord, RetentionPolicy


def priority_order(policies: Iterable[RetentionPolicy]) -> list[RetentionPolicy]:
    """Sort policies into evaluation order (priority desc, then id asc)."""
    return sorted(
        policies,
        key=lambda p: (-p.priority, p.id is None, p.id if p.id is not None else 0),
    )


def _filters_satisfied(policy: RetentionPolicy, record: PolicyRecord) -> bool:
    if policy.data_classifications:
        if record.data_classification not in policy.data_classifications:
            return False

    if policy.policy_categories:
        if record.policy_category not in policy.policy_categories:
            return False

    if policy.regulatory_frameworks:
        if not set(policy.regulatory_frameworks) & set(record.regulatory_frameworks):
            return False

    return True


def policy_matches(
    policy: RetentionPolicy,
    entity_type: EntityType,
    record: GovernedRecordModel,
) -> bool:
    """Check whether one policy governs a record.

    Classification, category and framework filters constrain policy
    documents only; acknowledgements are matched on scope alone.
    """
    if not policy.applies_to.covers(entity_type):
        return False
    if isinstance(record, PolicyRecord):
        return _filters_satisfied(policy, record)
    return True


def match_policy(
    entity_type: EntityType,
    record: GovernedRecordModel,
    active_policies: Sequence[RetentionPolicy],
) -> RetentionPolicy | None:
    """Return the first policy, in the given order, that governs the record.

    Args:
        entity_type: Type of the governed record
        record: The governed record
        active_policies: Policies already in evaluation order

    Returns:
        The applicable policy, or None if no policy applies
    """
    for policy in active_policies:
        if policy_matches(policy, entity_type, record):
            return policy
    return None


class PolicyMatcher:
    """Matches records against a fixed set of active policies."""

    def __init__(self, active_policies: Iterable[RetentionPolicy]):
        self._policies = priority_order(p for p in active_policies if p.is_active)

    @property
    def policies(self) -> list[RetentionPolicy]:
        """Active policies in evaluation order."""
        return list(self._policies)

    def match(
        self, entity_type: EntityType, record: GovernedRecordModel
    ) -> RetentionPolicy | None:
        return match_policy(entity_type, record, self._policies)
