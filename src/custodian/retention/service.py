"""Retention service facade.

RetentionService wires the retention components to one record store, audit
sink, notification sender and actor resolver, and exposes the operations
callers use: schedule generation, batch processing, legal holds, retention
policy configuration and data classification.
"""

from datetime import datetime

import structlog

from custodian.config.settings import RetentionSettings, get_settings
from custodian.core.audit import AuditEmitter, AuditSink, InMemoryAuditSink
from custodian.core.context import SYSTEM_ACTOR, ActorResolver, ContextActorResolver
from custodian.retention.calculator import ScheduleCalculator
from custodian.retention.classification import ClassificationService, ClassificationSuggestion
from custodian.retention.executor import ActionExecutor
from custodian.retention.holds import LegalHoldManager, LegalHoldRegistry
from custodian.retention.policies import RetentionPolicyDraft, RetentionPolicyService
from custodian.retention.schedule import RetentionSchedule, ScheduleBuilder
from custodian.retention.store import (
    InMemoryNotificationSender,
    InMemoryRecordStore,
    NotificationSender,
    RecordStore,
)
from custodian.retention.types import (
    BatchResult,
    DataClassification,
    LegalHold,
    LegalHoldRequest,
    PolicyRecord,
    RetentionPolicy,
    ScheduleEntry,
)

logger = structlog.get_logger()


class RetentionService:
    """Entry point for retention and legal-hold operations."""

    def __init__(
        self,
        store: RecordStore,
        audit_sink: AuditSink,
        notifier: NotificationSender,
        actors: ActorResolver | None = None,
        settings: RetentionSettings | None = None,
    ):
        """Initialize the service.

        Args:
            store: Record store holding governed records, policies and holds
            audit_sink: Destination for audit events
            notifier: Sender for Notify actions
            actors: Resolver for the acting identity (defaults to the bound
                actor, falling back to the retention scheduler identity)
            settings: Retention settings
        """
        self.settings = settings or RetentionSettings()
        self.store = store
        self.audit = AuditEmitter(audit_sink)
        self.actors = actors or ContextActorResolver(default=SYSTEM_ACTOR)
        self.calculator = ScheduleCalculator.from_settings(self.settings)

        self.policies = RetentionPolicyService(
            store, self.audit, self.actors, self.calculator, self.settings
        )
        self.registry = LegalHoldRegistry(store, self.settings)
        self.holds = LegalHoldManager(store, self.registry, self.audit, self.actors)
        self.builder = ScheduleBuilder(
            store, self.policies, self.registry, self.calculator, self.settings
        )
        self.executor = ActionExecutor(
            store, self.builder, self.registry, self.audit, self.actors, notifier
        )
        self.classification = ClassificationService(store, self.audit, self.actors)

        logger.info("retention_service_initialized")

    # =========================================================================
    # Schedule
    # =========================================================================

    async def generate_schedule(self, now: datetime | None = None) -> RetentionSchedule:
        return await self.builder.generate(now=now)

    async def get_expiring_items(self, within_days: int) -> list[ScheduleEntry]:
        """Unheld entries expiring within the given number of days."""
        return (await self.generate_schedule()).expiring_within(within_days)

    async def get_expired_items(self) -> list[ScheduleEntry]:
        return (await self.generate_schedule()).expired()

    async def process_retention_actions(self, dry_run: bool = True) -> BatchResult:
        """Run a retention sweep over the current schedule."""
        return await self.executor.process_expired(dry_run=dry_run)

    # =========================================================================
    # Legal Holds
    # =========================================================================

    async def place_legal_hold(self, request: LegalHoldRequest) -> list[LegalHold]:
        return await self.holds.place_hold(request)

    async def release_legal_hold(self, hold_id: int, reason: str) -> LegalHold:
        return await self.holds.release_hold(hold_id, reason)

    async def get_active_legal_holds(self) -> list[LegalHold]:
        return await self.registry.active_holds()

    # =========================================================================
    # Retention Policies
    # =========================================================================

    async def create_retention_policy(self, draft: RetentionPolicyDraft) -> RetentionPolicy:
        return await self.policies.create_policy(draft)

    async def get_retention_policies(self) -> list[RetentionPolicy]:
        return await self.policies.load_active_policies()

    # =========================================================================
    # Classification
    # =========================================================================

    async def apply_data_classification(
        self,
        policy_id: int,
        classification: DataClassification,
        justification: str,
        regulatory_frameworks: list[str] | None = None,
    ) -> dict:
        return await self.classification.apply_data_classification(
            policy_id, classification, justification, regulatory_frameworks
        )

    def suggest_classification(self, record: PolicyRecord) -> ClassificationSuggestion:
        return self.classification.suggest_classification(record)


# Global service instance
_service: RetentionService | None = None


def get_retention_service() -> RetentionService:
    """Get the global retention service instance.

    Uses in-memory collaborators until initialize_retention_service() is
    called.

    Returns:
        The RetentionService instance
    """
    global _service
    if _service is None:
        _service = RetentionService(
            InMemoryRecordStore(),
            InMemoryAuditSink(),
            InMemoryNotificationSender(),
            settings=get_settings().retention,
        )
    return _service


def initialize_retention_service(
    store: RecordStore,
    audit_sink: AuditSink,
    notifier: NotificationSender,
    actors: ActorResolver | None = None,
    settings: RetentionSettings | None = None,
) -> RetentionService:
    """Initialize the global retention service.

    Args:
        store: Record store
        audit_sink: Audit sink
        notifier: Notification sender
        actors: Actor resolver
        settings: Retention settings (defaults to application settings)

    Returns:
        The initialized RetentionService
    """
    global _service
    _service = RetentionService(
        store,
        audit_sink,
        notifier,
        actors=actors,
        settings=settings or get_settings().retention,
    )
    return _service
