"""Audit trail emission for compliance and accountability.

Every retention decision and legal-hold change produces an AuditEvent that
is appended to an AuditSink. Emission is one-way: the AuditEmitter logs and
swallows sink failures so that audit logging never breaks the primary
operation.

Usage:
    emitter = AuditEmitter(InMemoryAuditSink())
    await emitter.emit(
        AuditEventType.LEGAL_HOLD_PLACED,
        entity_type="Policy",
        entity_id=12,
        description="Legal hold placed on Policy 12: litigation",
    )
"""

from datetime import UTC, datetime
from typing import Any, Protocol

import structlog
from pydantic import BaseModel, Field
from pydantic_core import to_jsonable_python
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from custodian.core.context import ActorIdentity
from custodian.db.config import session_scope
from custodian.db.models.audit import AuditEventRecord, AuditEventType, AuditSeverity

logger = structlog.get_logger()


class AuditEvent(BaseModel):
    """One audit trail entry."""

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO
    entity_type: str
    entity_id: int | None = None
    policy_id: int | None = None
    policy_name: str | None = None
    description: str
    compliance_relevant: bool = True
    metadata: dict[str, Any] = Field(default_factory=dict)
    actor_id: int | None = None
    actor_name: str | None = None
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class AuditSink(Protocol):
    """Protocol for the audit-log collaborator."""

    async def append(self, event: AuditEvent) -> int | str:
        """Persist an event and return its id."""
        ...


class InMemoryAuditSink:
    """Audit sink that keeps events in a list (development and tests)."""

    def __init__(self) -> None:
        self.events: list[AuditEvent] = []

    async def append(self, event: AuditEvent) -> int:
        self.events.append(event)
        return len(self.events)

    def of_type(self, event_type: AuditEventType) -> list[AuditEvent]:
        """Events of one type, in emission order (for testing)."""
        return [e for e in self.events if e.event_type == event_type]


class SqlAuditSink:
    """Audit sink writing immutable rows to the audit_events table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def append(self, event: AuditEvent) -> int:
        record = AuditEventRecord(
            event_type=event.event_type.value,
            severity=event.severity.value,
            entity_type=event.entity_type,
            entity_id=event.entity_id,
            policy_id=event.policy_id,
            policy_name=event.policy_name,
            description=event.description,
            compliance_relevant=event.compliance_relevant,
            event_data=to_jsonable_python(event.metadata),
            actor_id=event.actor_id,
            actor_name=event.actor_name,
        )
        async with session_scope(self._session_factory) as session:
            session.add(record)
            await session.flush()
            return record.audit_id


class AuditEmitter:
    """Fire-and-forget front for an AuditSink.

    Failures of the sink are logged with the event that could not be
    written and never propagated to the caller.
    """

    def __init__(self, sink: AuditSink):
        self._sink = sink

    async def emit(
        self,
        event_type: AuditEventType,
        *,
        entity_type: str,
        description: str,
        entity_id: int | None = None,
        severity: AuditSeverity = AuditSeverity.INFO,
        policy_id: int | None = None,
        policy_name: str | None = None,
        metadata: dict[str, Any] | None = None,
        actor: ActorIdentity | None = None,
        compliance_relevant: bool = True,
    ) -> int | str | None:
        """Build and append an audit event.

        Returns:
            The sink's event id, or None if the sink failed
        """
        event = AuditEvent(
            event_type=event_type,
            severity=severity,
            entity_type=entity_type,
            entity_id=entity_id,
            policy_id=policy_id,
            policy_name=policy_name,
            description=description,
            compliance_relevant=compliance_relevant,
            metadata=metadata or {},
            actor_id=actor.id if actor else None,
            actor_name=actor.display_name if actor else None,
        )
        return await self.emit_event(event)

    async def emit_event(self, event: AuditEvent) -> int | str | None:
        """Append a prepared event, swallowing sink failures."""
        try:
            return await self._sink.append(event)
        except Exception as e:
            logger.error(
                "audit_emission_failed",
                event_type=event.event_type.value,
                entity_type=event.entity_type,
                entity_id=event.entity_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            return None
