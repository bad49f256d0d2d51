"""Retention schedule generation.

The ScheduleBuilder joins every governed record with its matching retention
policy and current hold state, producing a RetentionSchedule ordered by
urgency: fewest days remaining first, indefinite retention last.

Usage:
    builder = ScheduleBuilder(store, policy_service, registry)
    schedule = await builder.generate()

    for entry in schedule.expired():
        ...
"""

from collections.abc import Iterable, Iterator, Sequence
from datetime import datetime

import structlog
from pydantic import ValidationError

from custodian.config.settings import RetentionSettings
from custodian.observability.metrics import observe_schedule_build, record_active_holds
from custodian.retention.calculator import ScheduleCalculator
from custodian.retention.holds import HoldIndex, LegalHoldRegistry
from custodian.retention.mapping import GovernedRecordModel, record_from_fields
from custodian.retention.matcher import PolicyMatcher
from custodian.retention.policies import RetentionPolicyService
from custodian.retention.resolver import resolve_action
from custodian.retention.store import Collection, RecordStore, query_all
from custodian.retention.types import (
    AcknowledgementRecord,
    EntityType,
    LegalHold,
    PolicyRecord,
    RetentionPolicy,
    ScheduleEntry,
    utc_now,
)

logger = structlog.get_logger()


def entity_type_of(record: GovernedRecordModel) -> EntityType:
    """Entity type of a governed record schema."""
    if isinstance(record, PolicyRecord):
        return EntityType.POLICY
    return EntityType.ACKNOWLEDGEMENT


def _urgency_key(entry: ScheduleEntry) -> tuple[bool, int]:
    return (entry.is_indefinite, entry.days_until_expiry)


class RetentionSchedule:
    """Ordered retention schedule with its policy lookup.

    Entries are sorted by days until expiry, ascending, with indefinite
    retention last. Entries on legal hold never appear in the expiring or
    expired views.
    """

    def __init__(
        self,
        entries: Sequence[ScheduleEntry],
        policies: Iterable[RetentionPolicy] = (),
        generated_at: datetime | None = None,
    ):
        self.entries: list[ScheduleEntry] = list(entries)
        self.generated_at = generated_at or utc_now()
        self._policies = {p.id: p for p in policies if p.id is not None}

    def __iter__(self) -> Iterator[ScheduleEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def policy(self, policy_id: int | None) -> RetentionPolicy | None:
        """Retention policy referenced by an entry, if it is still known."""
        if policy_id is None:
            return None
        return self._policies.get(policy_id)

    def entry(self, entity_type: EntityType, entity_id: int) -> ScheduleEntry | None:
        for candidate in self.entries:
            if candidate.entity_type == entity_type and candidate.entity_id == entity_id:
                return candidate
        return None

    def expiring_within(self, days: int) -> list[ScheduleEntry]:
        """Entries expiring in 0 to ``days`` days that are not on hold."""
        return [
            e
            for e in self.entries
            if not e.is_indefinite
            and not e.is_on_legal_hold
            and 0 <= e.days_until_expiry <= days
        ]

    def expired(self) -> list[ScheduleEntry]:
        """Expired entries that are not on hold, in schedule order."""
        return [e for e in self.entries if e.is_expired and not e.is_on_legal_hold]

    def on_legal_hold(self) -> list[ScheduleEntry]:
        return [e for e in self.entries if e.is_on_legal_hold]


class ScheduleBuilder:
    """Builds retention schedules from governed records."""

    def __init__(
        self,
        store: RecordStore,
        policies: RetentionPolicyService,
        registry: LegalHoldRegistry,
        calculator: ScheduleCalculator | None = None,
        settings: RetentionSettings | None = None,
    ):
        """Initialize the builder.

        Args:
            store: Record store holding the governed records
            policies: Source of the active retention policies
            registry: Legal hold registry
            calculator: Date calculator (default periods from settings)
            settings: Retention settings (page sizes)
        """
        self._store = store
        self._policies = policies
        self._registry = registry
        self._settings = settings or RetentionSettings()
        self._calculator = calculator or ScheduleCalculator.from_settings(self._settings)

    @property
    def calculator(self) -> ScheduleCalculator:
        return self._calculator

    def build(
        self,
        records: Iterable[GovernedRecordModel],
        policies: Iterable[RetentionPolicy],
        holds: HoldIndex | Iterable[LegalHold],
        now: datetime | None = None,
    ) -> RetentionSchedule:
        """Build a schedule from already loaded data.

        Records without an applicable policy are left out.

        Args:
            records: Governed records (policy documents and acknowledgements)
            policies: Active retention policies
            holds: Active holds, indexed or as a list
            now: Reference time for days-until-expiry

        Returns:
            The sorted retention schedule
        """
        now = now or utc_now()
        matcher = PolicyMatcher(policies)
        hold_index = holds if isinstance(holds, HoldIndex) else HoldIndex(holds)
        entries: list[ScheduleEntry] = []

        for record in records:
            entity_type = entity_type_of(record)
            policy = matcher.match(entity_type, record)
            if policy is None:
                continue

            start = self._calculator.compute_start(record, policy.retention_start_event)
            expiry = self._calculator.compute_expiry(start, policy.retention_period_days)
            days = self._calculator.days_until_expiry(expiry, now)
            hold = hold_index.get(entity_type, record.id)

            entry = ScheduleEntry(
                entity_type=entity_type,
                entity_id=record.id,
                entity_name=record.display_name,
                retention_policy_id=policy.id,
                retention_policy_name=policy.name,
                retention_category=policy.retention_category,
                retention_period_days=policy.retention_period_days,
                created_date=record.created,
                retention_start_date=start,
                retention_expiry_date=expiry,
                days_until_expiry=days,
                is_on_legal_hold=hold is not None,
                legal_hold_reason=hold.reason if hold else None,
                action_required=resolve_action(
                    days, hold is not None, policy, indefinite=expiry is None
                ),
            )
            if isinstance(record, PolicyRecord):
                entry.data_classification = record.data_classification
                entry.regulatory_frameworks = list(record.regulatory_frameworks)
            entries.append(entry)

        entries.sort(key=_urgency_key)
        return RetentionSchedule(entries, matcher.policies, generated_at=now)

    async def generate(self, now: datetime | None = None) -> RetentionSchedule:
        """Load policies, records and holds from the store and build the schedule.

        Each collection is read in full, one page per query. Records
        that fail validation are skipped and logged.

        Raises:
            MalformedPolicyConfigError: If an active retention policy is unusable
            RecordStoreUnavailableError: If the store cannot be read
        """
        with observe_schedule_build() as ctx:
            policies = await self._policies.load_active_policies()
            records = [
                *await self._load_records(EntityType.POLICY),
                *await self._load_records(EntityType.ACKNOWLEDGEMENT),
            ]
            hold_index = await self._registry.index()
            record_active_holds(len(hold_index))

            schedule = self.build(records, policies, hold_index, now=now)
            ctx["entries"] = len(schedule)

        logger.info(
            "retention_schedule_generated",
            entries=len(schedule),
            expired=len(schedule.expired()),
            on_legal_hold=len(schedule.on_legal_hold()),
            policies=len(policies),
        )
        return schedule

    async def _load_records(
        self, entity_type: EntityType
    ) -> list[PolicyRecord | AcknowledgementRecord]:
        rows = await query_all(
            self._store,
            Collection.for_entity(entity_type),
            page_size=self._settings.record_fetch_limit,
        )
        records = []
        for row in rows:
            try:
                records.append(record_from_fields(entity_type, row))
            except ValidationError as e:
                logger.warning(
                    "governed_record_invalid",
                    entity_type=entity_type.value,
                    entity_id=row.get("id"),
                    errors=e.error_count(),
                )
        return records
