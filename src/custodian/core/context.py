"""Acting identity propagation for retention operations.

Archive records, legal holds and audit events are stamped with the identity
of whoever triggered them. The identity travels in a context variable so
that it follows the call into every awaited coroutine.

Usage:
    from custodian.core.context import ActorIdentity, actor_context, ContextActorResolver

    operator = ActorIdentity(id=42, email="records@example.com", display_name="Records Desk")

    with actor_context(operator):
        await service.place_legal_hold(request)

    # Components resolve the actor through an ActorResolver
    resolver = ContextActorResolver(default=SYSTEM_ACTOR)
    actor = resolver.resolve_actor()
"""

from contextlib import contextmanager
from contextvars import ContextVar, Token
from enum import Enum
from typing import Any, Protocol

from pydantic import BaseModel

from custodian.core.exceptions import ActorNotSetError


class ActorType(str, Enum):
    """Type of actor performing the operation."""

    HUMAN = "human"  # Operator via UI or CLI
    SERVICE = "service"  # Internal service call
    SYSTEM = "system"  # Scheduled retention sweep


class ActorIdentity(BaseModel):
    """Identity used to stamp archive, hold and audit records."""

    id: int
    email: str = ""
    display_name: str = ""
    actor_type: ActorType = ActorType.HUMAN

    model_config = {"frozen": True}

    def to_audit_dict(self) -> dict[str, Any]:
        """Convert the identity to a dictionary for audit metadata."""
        return {
            "actor_id": self.id,
            "actor_email": self.email,
            "actor_name": self.display_name,
            "actor_type": self.actor_type.value,
        }


SYSTEM_ACTOR = ActorIdentity(
    id=0,
    email="",
    display_name="Retention Scheduler",
    actor_type=ActorType.SYSTEM,
)


class ActorResolver(Protocol):
    """Supplies the identity of the current actor."""

    def resolve_actor(self) -> ActorIdentity:
        """Return the identity to stamp on records created by this call."""
        ...


# =============================================================================
# Context Variable Management
# =============================================================================

_current_actor: ContextVar[ActorIdentity | None] = ContextVar("current_actor", default=None)


def get_current_actor() -> ActorIdentity:
    """Get the actor bound to the current execution context.

    Raises:
        ActorNotSetError: If no actor is bound
    """
    actor = _current_actor.get()
    if actor is None:
        raise ActorNotSetError("No actor is bound. Use the actor_context() context manager.")
    return actor


def get_current_actor_or_none() -> ActorIdentity | None:
    """Get the bound actor, or None if not set."""
    return _current_actor.get()


def set_actor(actor: ActorIdentity) -> Token[ActorIdentity | None]:
    """Bind an actor and return a token for restoration.

    This is a low-level API. Prefer using the actor_context() context manager.
    """
    return _current_actor.set(actor)


def reset_actor(token: Token[ActorIdentity | None]) -> None:
    """Restore the previously bound actor using a token from set_actor()."""
    _current_actor.reset(token)


@contextmanager
def actor_context(actor: ActorIdentity):
    """Context manager binding an actor for the duration of the block.

    Works for sync and async code because contextvars propagate into
    tasks created inside the block.
    """
    token = set_actor(actor)
    try:
        yield actor
    finally:
        reset_actor(token)


class ContextActorResolver:
    """Resolves the actor from the current context, with an optional fallback."""

    def __init__(self, default: ActorIdentity | None = None):
        self._default = default

    def resolve_actor(self) -> ActorIdentity:
        actor = _current_actor.get()
        if actor is not None:
            return actor
        if self._default is not None:
            return self._default
        raise ActorNotSetError()


class StaticActorResolver:
    """Always resolves to the same identity (batch jobs, tests)."""

    def __init__(self, actor: ActorIdentity):
        self._actor = actor

    def resolve_actor(self) -> ActorIdentity:
        return self._actor
