"""Audit event models for compliance and accountability."""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, PortableJSON


class AuditEventType(str, Enum):
    """Types of audit events emitted by the retention engine."""

    # Retention processing
    RETENTION_APPLIED = "retention.applied"
    RECORD_ARCHIVED = "retention.record_archived"
    DATA_PURGED = "retention.data_purged"
    RETENTION_NOTIFIED = "retention.notified"

    # Legal holds
    LEGAL_HOLD_PLACED = "legal_hold.placed"
    LEGAL_HOLD_RELEASED = "legal_hold.released"

    # Administrative
    SETTINGS_CHANGED = "admin.settings_changed"
    CLASSIFICATION_APPLIED = "policy.classification_applied"


class AuditSeverity(str, Enum):
    """Severity levels for audit events."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEventRecord(Base):
    """Immutable audit log entry for compliance tracking.

    Audit events are append-only and capture every retention decision
    and legal-hold change.
    """

    __tablename__ = "audit_events"

    audit_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False, default="info")

    # Target
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    policy_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    policy_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Event details
    description: Mapped[str] = mapped_column(Text, nullable=False)
    compliance_relevant: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    event_data: Mapped[dict] = mapped_column(PortableJSON(), nullable=False, default=dict)

    # Actor
    actor_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    actor_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("idx_audit_event_type", "event_type"),
        Index("idx_audit_entity", "entity_type", "entity_id"),
        Index("idx_audit_created", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<AuditEventRecord(id={self.audit_id}, type={self.event_type}, "
            f"severity={self.severity})>"
        )
