"""Legal hold tracking and management.

LegalHoldRegistry answers "is this record held" against the hold
collection. A schedule pass fetches the active holds once and indexes them
so that every record in the pass sees the same hold state.

LegalHoldManager places and releases holds. Each placement writes the hold
record and, for policy documents, the denormalized hold flags on the
target. Multi-record requests are processed item by item; a failure stops
the request without undoing holds already placed.
"""

from collections.abc import Iterable

import structlog

from custodian.config.settings import RetentionSettings
from custodian.core.audit import AuditEmitter
from custodian.core.context import ActorResolver
from custodian.core.exceptions import LegalHoldNotFoundError, RecordNotFoundError
from custodian.db.models.audit import AuditEventType, AuditSeverity
from custodian.retention.mapping import hold_from_fields, hold_to_fields
from custodian.retention.store import Collection, RecordStore, query_all
from custodian.retention.types import (
    EntityType,
    HoldStatus,
    LegalHold,
    LegalHoldRequest,
    utc_now,
)

logger = structlog.get_logger()


class HoldIndex:
    """Constant-time lookup of active holds by (entity type, entity id).

    When a record carries several active holds the most recently started
    one is kept.
    """

    def __init__(self, holds: Iterable[LegalHold]):
        self._by_target: dict[tuple[EntityType, int], LegalHold] = {}
        for hold in holds:
            if not hold.is_active:
                continue
            key = (hold.entity_type, hold.entity_id)
            current = self._by_target.get(key)
            if current is None or hold.start_date > current.start_date:
                self._by_target[key] = hold

    def __len__(self) -> int:
        return len(self._by_target)

    def __contains__(self, key: tuple[EntityType, int]) -> bool:
        return key in self._by_target

    def get(self, entity_type: EntityType, entity_id: int) -> LegalHold | None:
        return self._by_target.get((entity_type, entity_id))

    def is_held(self, entity_type: EntityType, entity_id: int) -> bool:
        return (entity_type, entity_id) in self._by_target


class LegalHoldRegistry:
    """Read-only view over the legal hold collection.

    Every call goes to the store; nothing is cached between calls.
    """

    def __init__(self, store: RecordStore, settings: RetentionSettings | None = None):
        self._store = store
        self._settings = settings or RetentionSettings()

    async def active_holds(self) -> list[LegalHold]:
        """Active holds, most recent start first."""
        rows = await query_all(
            self._store,
            Collection.LEGAL_HOLDS,
            {"status": HoldStatus.ACTIVE.value},
            page_size=self._settings.hold_fetch_limit,
        )
        holds = [hold_from_fields(row) for row in rows]
        holds.sort(key=lambda hold: hold.start_date, reverse=True)
        return holds

    async def find_active(self, entity_type: EntityType, entity_id: int) -> LegalHold | None:
        """The active hold on a record, if any."""
        rows = await self._store.query(
            Collection.LEGAL_HOLDS,
            {
                "entity_type": entity_type.value,
                "entity_id": entity_id,
                "status": HoldStatus.ACTIVE.value,
            },
            order_by="start_date",
            descending=True,
            limit=1,
        )
        return hold_from_fields(rows[0]) if rows else None

    async def is_held(self, entity_type: EntityType, entity_id: int) -> bool:
        return await self.find_active(entity_type, entity_id) is not None

    async def index(self) -> HoldIndex:
        """Snapshot of all active holds for one schedule pass."""
        return HoldIndex(await self.active_holds())


class LegalHoldManager:
    """Places and releases legal holds."""

    def __init__(
        self,
        store: RecordStore,
        registry: LegalHoldRegistry,
        audit: AuditEmitter,
        actors: ActorResolver,
    ):
        """Initialize the manager.

        Args:
            store: Record store holding holds and their targets
            registry: Registry used to detect existing holds
            audit: Audit emitter for hold events
            actors: Resolver for the identity stamped on holds
        """
        self._store = store
        self._registry = registry
        self._audit = audit
        self._actors = actors

    async def place_hold(self, request: LegalHoldRequest) -> list[LegalHold]:
        """Place a legal hold on each requested record.

        Records that already have an active hold are skipped with a warning.

        Args:
            request: Target type, ids, reason and hold period

        Returns:
            The newly created holds, in request order

        Raises:
            RecordStoreUnavailableError: If a target or the hold collection
                cannot be read or written. Holds placed on earlier ids in the
                same request are kept.
        """
        actor = self._actors.resolve_actor()
        placed: list[LegalHold] = []

        for entity_id in request.entity_ids:
            existing = await self._registry.find_active(request.entity_type, entity_id)
            if existing is not None:
                logger.warning(
                    "legal_hold_already_active",
                    entity_type=request.entity_type.value,
                    entity_id=entity_id,
                    hold_id=existing.id,
                )
                continue

            entity_name = await self._entity_name(request.entity_type, entity_id)

            if request.entity_type == EntityType.POLICY:
                await self._store.update(
                    Collection.POLICIES,
                    entity_id,
                    {
                        "is_legal_hold": True,
                        "legal_hold_reason": request.reason,
                        "legal_hold_start_date": request.start_date,
                        "legal_hold_end_date": request.end_date,
                    },
                )

            hold = LegalHold(
                entity_type=request.entity_type,
                entity_id=entity_id,
                entity_name=entity_name,
                reason=request.reason,
                case_reference=request.case_reference,
                requested_by_id=actor.id,
                requested_by_name=actor.display_name,
                start_date=request.start_date,
                end_date=request.end_date,
                status=HoldStatus.ACTIVE,
                notes=request.notes,
            )
            hold_id = await self._store.add(Collection.LEGAL_HOLDS, hold_to_fields(hold))
            hold = hold.model_copy(update={"id": hold_id})
            placed.append(hold)

            logger.info(
                "legal_hold_placed",
                hold_id=hold_id,
                entity_type=request.entity_type.value,
                entity_id=entity_id,
                case_reference=request.case_reference,
            )
            await self._audit.emit(
                AuditEventType.LEGAL_HOLD_PLACED,
                severity=AuditSeverity.WARNING,
                entity_type=request.entity_type.value,
                entity_id=entity_id,
                description=(
                    f"Legal hold placed on {request.entity_type.value} {entity_id}: "
                    f"{request.reason}"
                ),
                metadata={"hold_id": hold_id, "case_reference": request.case_reference},
                actor=actor,
            )

        return placed

    async def release_hold(self, hold_id: int, reason: str) -> LegalHold:
        """Release an active legal hold.

        Releasing a hold that is no longer active changes nothing.

        Args:
            hold_id: Id of the hold record
            reason: Why the hold is released

        Returns:
            The hold in its released state

        Raises:
            LegalHoldNotFoundError: If no hold has this id
            RecordStoreUnavailableError: If the store cannot be updated
        """
        try:
            fields = await self._store.get(Collection.LEGAL_HOLDS, hold_id)
        except RecordNotFoundError as e:
            raise LegalHoldNotFoundError(hold_id) from e

        hold = hold_from_fields(fields)
        if not hold.is_active:
            logger.info("legal_hold_not_active", hold_id=hold_id, status=hold.status.value)
            return hold

        actor = self._actors.resolve_actor()
        now = utc_now()
        release = {
            "status": HoldStatus.RELEASED.value,
            "released_by_id": actor.id,
            "released_by_name": actor.display_name,
            "released_date": now,
            "release_reason": reason,
        }
        await self._store.update(Collection.LEGAL_HOLDS, hold_id, release)

        if hold.entity_type == EntityType.POLICY:
            await self._store.update(
                Collection.POLICIES,
                hold.entity_id,
                {"is_legal_hold": False, "legal_hold_end_date": now},
            )

        logger.info(
            "legal_hold_released",
            hold_id=hold_id,
            entity_type=hold.entity_type.value,
            entity_id=hold.entity_id,
        )
        await self._audit.emit(
            AuditEventType.LEGAL_HOLD_RELEASED,
            entity_type=hold.entity_type.value,
            entity_id=hold.entity_id,
            description=f"Legal hold released: {reason}",
            metadata={"hold_id": hold_id, "case_reference": hold.case_reference},
            actor=actor,
        )

        return hold.model_copy(
            update={
                "status": HoldStatus.RELEASED,
                "released_by_id": actor.id,
                "released_by_name": actor.display_name,
                "released_date": now,
                "release_reason": reason,
            }
        )

    async def _entity_name(self, entity_type: EntityType, entity_id: int) -> str:
        fields = await self._store.get(Collection.for_entity(entity_type), entity_id)
        if entity_type == EntityType.POLICY:
            return fields.get("name") or fields.get("title") or f"Policy {entity_id}"
        return fields.get("title") or f"{entity_type.value} {entity_id}"
