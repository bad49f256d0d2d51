"""Retention and legal-hold decision engine.

This package decides, per governed record (policy document or
acknowledgement), whether it must be archived, deleted, reviewed or left
alone, and enforces legal holds over every such action.

Usage:
    from custodian.retention import (
        LegalHoldRequest,
        EntityType,
        get_retention_service,
    )

    service = get_retention_service()

    # Inspect the schedule
    schedule = await service.generate_schedule()
    soon = schedule.expiring_within(30)

    # Place a legal hold
    await service.place_legal_hold(
        LegalHoldRequest(
            entity_type=EntityType.POLICY,
            entity_ids=[12, 13],
            reason="Litigation hold - Case #123",
        )
    )

    # Sweep (dry run first)
    report = await service.process_retention_actions(dry_run=True)
"""

from custodian.retention.calculator import ScheduleCalculator, default_period_table
from custodian.retention.classification import (
    ClassificationService,
    ClassificationSuggestion,
    handling_instructions,
    retention_for_classification,
    suggest_classification,
)
from custodian.retention.executor import ActionExecutor
from custodian.retention.holds import HoldIndex, LegalHoldManager, LegalHoldRegistry
from custodian.retention.matcher import PolicyMatcher, match_policy, priority_order
from custodian.retention.policies import (
    RetentionPolicyDraft,
    RetentionPolicyService,
    create_default_policies,
)
from custodian.retention.resolver import resolve_action
from custodian.retention.schedule import RetentionSchedule, ScheduleBuilder
from custodian.retention.service import (
    RetentionService,
    get_retention_service,
    initialize_retention_service,
)
from custodian.retention.store import (
    Collection,
    InMemoryNotificationSender,
    InMemoryRecordStore,
    NotificationSender,
    RecordStore,
)
from custodian.retention.types import (
    AcknowledgementRecord,
    AppliesTo,
    BatchResult,
    DataClassification,
    EntityType,
    EntryFailure,
    EntrySuccess,
    ExpiryAction,
    HoldStatus,
    LegalHold,
    LegalHoldRequest,
    PolicyRecord,
    PolicyStatus,
    RetentionCategory,
    RetentionPolicy,
    RetentionStartEvent,
    ScheduleEntry,
)

__all__ = [
    # Service
    "RetentionService",
    "get_retention_service",
    "initialize_retention_service",
    # Components
    "ActionExecutor",
    "ClassificationService",
    "ClassificationSuggestion",
    "HoldIndex",
    "LegalHoldManager",
    "LegalHoldRegistry",
    "PolicyMatcher",
    "RetentionPolicyDraft",
    "RetentionPolicyService",
    "RetentionSchedule",
    "ScheduleBuilder",
    "ScheduleCalculator",
    # Functions
    "create_default_policies",
    "default_period_table",
    "handling_instructions",
    "match_policy",
    "priority_order",
    "resolve_action",
    "retention_for_classification",
    "suggest_classification",
    # Collaborators
    "Collection",
    "InMemoryNotificationSender",
    "InMemoryRecordStore",
    "NotificationSender",
    "RecordStore",
    # Types
    "AcknowledgementRecord",
    "AppliesTo",
    "BatchResult",
    "DataClassification",
    "EntityType",
    "EntryFailure",
    "EntrySuccess",
    "ExpiryAction",
    "HoldStatus",
    "LegalHold",
    "LegalHoldRequest",
    "PolicyRecord",
    "PolicyStatus",
    "RetentionCategory",
    "RetentionPolicy",
    "RetentionStartEvent",
    "ScheduleEntry",
]
