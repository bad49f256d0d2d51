"""Tests for retention policy matching."""

from datetime import UTC, datetime

import pytest

from custodian.retention.matcher import PolicyMatcher, match_policy, priority_order
from custodian.retention.types import (
    AcknowledgementRecord,
    AppliesTo,
    DataClassification,
    EntityType,
    PolicyRecord,
)

CREATED = datetime(2020, 1, 1, tzinfo=UTC)


@pytest.fixture
def document() -> PolicyRecord:
    return PolicyRecord(
        id=5,
        name="Data Protection Policy",
        created=CREATED,
        policy_category="Privacy",
        data_classification=DataClassification.CONFIDENTIAL,
        regulatory_frameworks=["GDPR", "SOX"],
    )


@pytest.fixture
def acknowledgement() -> AcknowledgementRecord:
    return AcknowledgementRecord(id=9, policy_id=5, created=CREATED)


class TestPriorityOrder:
    """Tests for policy evaluation order."""

    def test_higher_priority_first(self, make_policy) -> None:
        """Test that policies are ordered by descending priority."""
        low = make_policy(id=1, name="low", priority=5)
        high = make_policy(id=2, name="high", priority=50)

        assert [p.name for p in priority_order([low, high])] == ["high", "low"]

    def test_equal_priority_lowest_id_first(self, make_policy) -> None:
        """Test that equal priorities are broken by ascending id."""
        a = make_policy(id=7, name="seven")
        b = make_policy(id=3, name="three")
        c = make_policy(name="unsaved")

        assert [p.name for p in priority_order([c, a, b])] == ["three", "seven", "unsaved"]


class TestMatchPolicy:
    """Tests for match_policy."""

    def test_scope_must_cover_entity_type(self, make_policy, document) -> None:
        """Test that a policy scoped to acknowledgements ignores documents."""
        policy = make_policy(id=1, applies_to=AppliesTo.ACKNOWLEDGEMENT)

        assert match_policy(EntityType.POLICY, document, [policy]) is None

    def test_all_scope_matches_both_types(self, make_policy, document, acknowledgement) -> None:
        """Test that an All-scoped policy matches every governed record."""
        policy = make_policy(id=1, applies_to=AppliesTo.ALL)

        assert match_policy(EntityType.POLICY, document, [policy]) is policy
        assert match_policy(EntityType.ACKNOWLEDGEMENT, acknowledgement, [policy]) is policy

    def test_audit_log_scope_never_matches(self, make_policy, document) -> None:
        policy = make_policy(id=1, applies_to=AppliesTo.AUDIT_LOG)

        assert match_policy(EntityType.POLICY, document, [policy]) is None

    def test_classification_filter(self, make_policy, document) -> None:
        """Test classification membership filtering."""
        matching = make_policy(id=1, data_classifications=[DataClassification.CONFIDENTIAL])
        other = make_policy(id=2, data_classifications=[DataClassification.PUBLIC])

        assert match_policy(EntityType.POLICY, document, [matching]) is matching
        assert match_policy(EntityType.POLICY, document, [other]) is None

    def test_classification_filter_rejects_unclassified(self, make_policy) -> None:
        record = PolicyRecord(id=1, created=CREATED)
        policy = make_policy(id=1, data_classifications=[DataClassification.INTERNAL])

        assert match_policy(EntityType.POLICY, record, [policy]) is None

    def test_category_filter(self, make_policy, document) -> None:
        """Test policy category filtering."""
        matching = make_policy(id=1, policy_categories=["Privacy", "HR"])
        other = make_policy(id=2, policy_categories=["Finance"])

        assert match_policy(EntityType.POLICY, document, [matching]) is matching
        assert match_policy(EntityType.POLICY, document, [other]) is None

    def test_framework_filter_intersects(self, make_policy, document) -> None:
        """Test that regulatory frameworks match on any overlap."""
        matching = make_policy(id=1, regulatory_frameworks=["HIPAA", "SOX"])
        other = make_policy(id=2, regulatory_frameworks=["HIPAA"])

        assert match_policy(EntityType.POLICY, document, [matching]) is matching
        assert match_policy(EntityType.POLICY, document, [other]) is None

    def test_filters_do_not_apply_to_acknowledgements(
        self, make_policy, acknowledgement
    ) -> None:
        """Test that acknowledgements match on scope alone."""
        policy = make_policy(
            id=1,
            applies_to=AppliesTo.ACKNOWLEDGEMENT,
            data_classifications=[DataClassification.REGULATED],
            regulatory_frameworks=["HIPAA"],
        )

        assert match_policy(EntityType.ACKNOWLEDGEMENT, acknowledgement, [policy]) is policy

    def test_first_match_wins(self, make_policy, document) -> None:
        first = make_policy(id=1, name="first")
        second = make_policy(id=2, name="second")

        assert match_policy(EntityType.POLICY, document, [first, second]) is first

    def test_no_policies(self, document) -> None:
        assert match_policy(EntityType.POLICY, document, []) is None


class TestPolicyMatcher:
    """Tests for PolicyMatcher."""

    def test_higher_priority_wins(self, make_policy, document) -> None:
        """Test that of two matching policies the higher priority is chosen."""
        low = make_policy(id=1, name="low", priority=10)
        high = make_policy(id=2, name="high", priority=20)

        matcher = PolicyMatcher([low, high])

        assert matcher.match(EntityType.POLICY, document) is high

    def test_priority_beats_specificity(self, make_policy, document) -> None:
        """Test that a broad high-priority policy beats a narrow low-priority one."""
        narrow = make_policy(
            id=1,
            priority=5,
            applies_to=AppliesTo.POLICY,
            data_classifications=[DataClassification.CONFIDENTIAL],
        )
        broad = make_policy(id=2, priority=15)

        assert PolicyMatcher([narrow, broad]).match(EntityType.POLICY, document) is broad

    def test_tie_break_is_lowest_id(self, make_policy, document) -> None:
        a = make_policy(id=12, name="twelve")
        b = make_policy(id=4, name="four")

        assert PolicyMatcher([a, b]).match(EntityType.POLICY, document).name == "four"

    def test_inactive_policies_ignored(self, make_policy, document) -> None:
        inactive = make_policy(id=1, priority=99, is_active=False)
        active = make_policy(id=2, priority=1)

        matcher = PolicyMatcher([inactive, active])

        assert matcher.match(EntityType.POLICY, document) is active
        assert matcher.policies == [active]
