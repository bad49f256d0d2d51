"""Core services and utilities for Custodian."""

from .audit import AuditEmitter, AuditEvent, AuditSink, InMemoryAuditSink, SqlAuditSink
from .context import (
    SYSTEM_ACTOR,
    ActorIdentity,
    ActorResolver,
    ActorType,
    ContextActorResolver,
    StaticActorResolver,
    actor_context,
    get_current_actor,
    get_current_actor_or_none,
)
from .exceptions import (
    ActorNotSetError,
    LegalHoldNotFoundError,
    MalformedPolicyConfigError,
    RecordNotFoundError,
    RecordStoreUnavailableError,
)

__all__ = [
    # Audit
    "AuditEmitter",
    "AuditEvent",
    "AuditSink",
    "InMemoryAuditSink",
    "SqlAuditSink",
    # Context
    "SYSTEM_ACTOR",
    "ActorIdentity",
    "ActorResolver",
    "ActorType",
    "ContextActorResolver",
    "StaticActorResolver",
    "actor_context",
    "get_current_actor",
    "get_current_actor_or_none",
    # Exceptions
    "ActorNotSetError",
    "LegalHoldNotFoundError",
    "MalformedPolicyConfigError",
    "RecordNotFoundError",
    "RecordStoreUnavailableError",
]
