"""Retention action execution.

ActionExecutor consumes the expired part of a retention schedule and applies
each entry's expiry action against the record store:

- Archive: copy the record into the retention archive, then mark it archived
- Delete: archive first, then physically remove acknowledgements only
- Review: flag for manual review, no mutation
- Notify: send a notice to the policy's recipients

A failing entry is recorded in the batch report and the batch moves on.
In dry-run mode every branch runs and counts, but nothing is written.
"""

from uuid import uuid4

import structlog

from custodian.core.audit import AuditEmitter
from custodian.core.context import ActorIdentity, ActorResolver
from custodian.core.logging import LogContext
from custodian.db.models.audit import AuditEventType, AuditSeverity
from custodian.observability.metrics import record_retention_action, record_retention_error
from custodian.retention.holds import LegalHoldRegistry
from custodian.retention.mapping import archive_fields
from custodian.retention.schedule import RetentionSchedule, ScheduleBuilder
from custodian.retention.store import Collection, Fields, NotificationSender, RecordStore
from custodian.retention.types import (
    BatchResult,
    EntityType,
    EntryFailure,
    EntryOutcome,
    EntrySuccess,
    ExpiryAction,
    PolicyStatus,
    RetentionPolicy,
    ScheduleEntry,
    utc_now,
)

logger = structlog.get_logger()

SKIPPED_LEGAL_HOLD = "SkippedLegalHold"


class ActionExecutor:
    """Applies expiry actions to expired schedule entries."""

    def __init__(
        self,
        store: RecordStore,
        builder: ScheduleBuilder,
        registry: LegalHoldRegistry,
        audit: AuditEmitter,
        actors: ActorResolver,
        notifier: NotificationSender,
    ):
        """Initialize the executor.

        Args:
            store: Record store to archive into and delete from
            builder: Builds the schedule when none is supplied
            registry: Used to re-check holds just before acting
            audit: Audit emitter for per-entry and summary events
            actors: Resolver for the identity stamped on archive copies
            notifier: Sender for Notify actions
        """
        self._store = store
        self._builder = builder
        self._registry = registry
        self._audit = audit
        self._actors = actors
        self._notifier = notifier

    async def process_expired(
        self,
        dry_run: bool = True,
        schedule: RetentionSchedule | None = None,
    ) -> BatchResult:
        """Apply expiry actions to every expired, unheld entry.

        Args:
            dry_run: Count what would happen without writing to the store
            schedule: Schedule to process; generated from the store if omitted

        Returns:
            Batch report with counters, errors and per-entry outcomes
        """
        if schedule is None:
            schedule = await self._builder.generate()

        expired = schedule.expired()
        actor = self._actors.resolve_actor()
        result = BatchResult(dry_run=dry_run, total_processed=len(expired))

        with LogContext(operation="process_retention", batch_id=uuid4().hex, dry_run=dry_run):
            logger.info("retention_batch_started", expired=len(expired))

            for entry in expired:
                outcome = await self._process_entry(entry, schedule, result, actor)
                result.record(outcome)
                if isinstance(outcome, EntryFailure):
                    record_retention_error(entry.entity_type.value)

            logger.info("retention_batch_completed", **result.counters())

        label = " (dry run)" if dry_run else ""
        await self._audit.emit(
            AuditEventType.RETENTION_APPLIED,
            severity=AuditSeverity.WARNING if result.errors else AuditSeverity.INFO,
            entity_type="System",
            entity_id=0,
            description=(
                f"Retention processing{label}: {result.archived} archived, "
                f"{result.deleted} deleted, {result.review_required} for review"
            ),
            metadata=result.counters(),
            actor=actor,
        )
        return result

    async def _process_entry(
        self,
        entry: ScheduleEntry,
        schedule: RetentionSchedule,
        result: BatchResult,
        actor: ActorIdentity,
    ) -> EntryOutcome:
        dry_run = result.dry_run
        try:
            # Re-check: a hold may have been placed after the schedule was built
            if entry.is_on_legal_hold or await self._registry.is_held(
                entry.entity_type, entry.entity_id
            ):
                result.skipped_legal_hold += 1
                logger.info(
                    "retention_skipped_legal_hold",
                    entity_type=entry.entity_type.value,
                    entity_id=entry.entity_id,
                )
                return EntrySuccess(entry.entity_type, entry.entity_id, SKIPPED_LEGAL_HOLD)

            policy = schedule.policy(entry.retention_policy_id)
            if policy is None:
                raise LookupError(f"retention policy {entry.retention_policy_id} is not active")

            action = policy.action_on_expiry
            if action == ExpiryAction.ARCHIVE:
                if not dry_run:
                    await self._archive(entry, actor)
                result.archived += 1

            elif action == ExpiryAction.DELETE:
                if not dry_run:
                    await self._delete(entry, actor)
                result.deleted += 1

            elif action == ExpiryAction.REVIEW:
                result.review_required += 1

            elif action == ExpiryAction.NOTIFY:
                if not policy.notification_recipients:
                    logger.warning(
                        "retention_notify_without_recipients",
                        entity_type=entry.entity_type.value,
                        entity_id=entry.entity_id,
                        retention_policy_id=policy.id,
                    )
                    return EntrySuccess(entry.entity_type, entry.entity_id, action.value)
                if not dry_run:
                    await self._notify(entry, policy, actor)
                result.notifications_sent += 1

            record_retention_action(action.value, dry_run)
            return EntrySuccess(entry.entity_type, entry.entity_id, action.value)

        except Exception as e:
            logger.error(
                "retention_entry_failed",
                entity_type=entry.entity_type.value,
                entity_id=entry.entity_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            return EntryFailure(
                entry.entity_type,
                entry.entity_id,
                f"Failed to process {entry.entity_type.value} {entry.entity_id}: {e}",
            )

    # =========================================================================
    # Store Mutations
    # =========================================================================

    async def _archive(self, entry: ScheduleEntry, actor: ActorIdentity) -> Fields:
        """Copy a record into the retention archive and mark it archived.

        Returns:
            The record's fields as they were before archiving
        """
        collection = Collection.for_entity(entry.entity_type)
        original = await self._store.get(collection, entry.entity_id)
        now = utc_now()

        archive_id = await self._store.add(
            Collection.RETENTION_ARCHIVE,
            archive_fields(
                entry.entity_type,
                original,
                actor=actor,
                archived_at=now,
                retention_policy_id=entry.retention_policy_id,
                retention_policy_name=entry.retention_policy_name,
            ),
        )

        if entry.entity_type == EntityType.POLICY:
            marker = {"status": PolicyStatus.ARCHIVED.value, "archived_date": now, "is_active": False}
        else:
            marker = {"is_archived": True, "archived_date": now}
        await self._store.update(collection, entry.entity_id, marker)

        logger.info(
            "record_archived",
            entity_type=entry.entity_type.value,
            entity_id=entry.entity_id,
            archive_id=archive_id,
        )
        policy_id, policy_name = _governed_policy(entry, original)
        await self._audit.emit(
            AuditEventType.RECORD_ARCHIVED,
            entity_type=entry.entity_type.value,
            entity_id=entry.entity_id,
            policy_id=policy_id,
            policy_name=policy_name,
            description=(
                f'{entry.entity_type.value} archived due to retention policy '
                f'"{entry.retention_policy_name}"'
            ),
            metadata={"archive_id": archive_id, "retention_policy_id": entry.retention_policy_id},
            actor=actor,
        )
        return original

    async def _delete(self, entry: ScheduleEntry, actor: ActorIdentity) -> None:
        """Archive a record, then remove it if it is an acknowledgement."""
        original = await self._archive(entry, actor)

        if entry.entity_type != EntityType.ACKNOWLEDGEMENT:
            return

        await self._store.delete(Collection.ACKNOWLEDGEMENTS, entry.entity_id)
        logger.info("record_purged", entity_type=entry.entity_type.value, entity_id=entry.entity_id)

        policy_id, policy_name = _governed_policy(entry, original)
        await self._audit.emit(
            AuditEventType.DATA_PURGED,
            severity=AuditSeverity.WARNING,
            entity_type=entry.entity_type.value,
            entity_id=entry.entity_id,
            policy_id=policy_id,
            policy_name=policy_name,
            description=(
                f"Acknowledgement record deleted due to retention policy "
                f'"{entry.retention_policy_name}"'
            ),
            metadata={"retention_policy_id": entry.retention_policy_id},
            actor=actor,
        )

    async def _notify(
        self, entry: ScheduleEntry, policy: RetentionPolicy, actor: ActorIdentity
    ) -> None:
        recipients = policy.notification_recipients
        subject = f"Retention period expired: {entry.entity_name}"
        body = (
            f"{entry.entity_type.value} {entry.entity_id} ({entry.entity_name}) reached the end "
            f'of its retention period under "{policy.name}" on '
            f"{entry.retention_expiry_date:%Y-%m-%d}."
        )
        await self._notifier.send(recipients, subject, body)

        await self._audit.emit(
            AuditEventType.RETENTION_NOTIFIED,
            entity_type=entry.entity_type.value,
            entity_id=entry.entity_id,
            description=f"Retention expiry notice sent to {len(recipients)} recipient(s)",
            metadata={"recipients": recipients, "retention_policy_id": policy.id},
            actor=actor,
        )


def _governed_policy(entry: ScheduleEntry, original: Fields) -> tuple[int | None, str | None]:
    """Policy document a governed record belongs to (itself, for policies)."""
    if entry.entity_type == EntityType.POLICY:
        return entry.entity_id, entry.entity_name
    return original.get("policy_id"), None
