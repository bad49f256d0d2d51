"""Database models."""

from .audit import AuditEventRecord, AuditEventType, AuditSeverity
from .base import Base, PortableJSON, TimestampMixin
from .items import StoredItem

__all__ = [
    "Base",
    "PortableJSON",
    "TimestampMixin",
    "StoredItem",
    "AuditEventRecord",
    "AuditEventType",
    "AuditSeverity",
]
