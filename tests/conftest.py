"""Pytest fixtures for Custodian tests."""

from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime
from typing import Any

import pytest
import pytest_asyncio
import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from custodian.config.settings import RetentionSettings, Settings
from custodian.core.audit import AuditEmitter, InMemoryAuditSink
from custodian.core.context import ActorIdentity, StaticActorResolver
from custodian.db.config import create_engine, create_session_factory, init_models
from custodian.retention.mapping import hold_to_fields, policy_to_fields
from custodian.retention.service import RetentionService
from custodian.retention.store import Collection, InMemoryNotificationSender, InMemoryRecordStore
from custodian.retention.types import (
    AppliesTo,
    EntityType,
    ExpiryAction,
    HoldStatus,
    LegalHold,
    RetentionCategory,
    RetentionPolicy,
)

# =============================================================================
# Structlog Configuration Fixture
# =============================================================================


@pytest.fixture(scope="function", autouse=True)
def reset_structlog_after_test():
    """Reset structlog configuration after each test.

    This ensures tests that modify structlog global state
    don't affect other tests.
    """
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


# =============================================================================
# Settings and Identity
# =============================================================================


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Create settings for testing."""
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'custodian.db'}",
        ENVIRONMENT="test",
        DEBUG=False,
        log_level="DEBUG",
    )


@pytest.fixture
def retention_settings() -> RetentionSettings:
    return RetentionSettings()


@pytest.fixture
def now() -> datetime:
    """Fixed reference time for schedule computations."""
    return datetime(2026, 6, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def operator() -> ActorIdentity:
    return ActorIdentity(id=42, email="records@example.com", display_name="Records Desk")


@pytest.fixture
def actors(operator: ActorIdentity) -> StaticActorResolver:
    return StaticActorResolver(operator)


# =============================================================================
# Collaborators
# =============================================================================


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def audit_sink() -> InMemoryAuditSink:
    return InMemoryAuditSink()


@pytest.fixture
def audit(audit_sink: InMemoryAuditSink) -> AuditEmitter:
    return AuditEmitter(audit_sink)


@pytest.fixture
def notifier() -> InMemoryNotificationSender:
    return InMemoryNotificationSender()


@pytest.fixture
def service(
    store: InMemoryRecordStore,
    audit_sink: InMemoryAuditSink,
    notifier: InMemoryNotificationSender,
    actors: StaticActorResolver,
) -> RetentionService:
    """Retention service over in-memory collaborators."""
    return RetentionService(store, audit_sink, notifier, actors=actors)


# =============================================================================
# Record Factories
# =============================================================================


@pytest.fixture
def make_policy() -> Callable[..., RetentionPolicy]:
    """Factory for retention policies with sensible defaults."""

    def _make(**overrides: Any) -> RetentionPolicy:
        values: dict[str, Any] = {
            "name": "Standard Retention",
            "applies_to": AppliesTo.ALL,
            "retention_category": RetentionCategory.STANDARD,
            "retention_period_days": 1095,
            "action_on_expiry": ExpiryAction.REVIEW,
            "priority": 10,
        }
        values.update(overrides)
        return RetentionPolicy(**values)

    return _make


@pytest.fixture
def seed_policy(
    store: InMemoryRecordStore, make_policy: Callable[..., RetentionPolicy]
) -> Callable[..., RetentionPolicy]:
    """Store a retention policy and return it with its id."""

    def _seed(**overrides: Any) -> RetentionPolicy:
        policy = make_policy(**overrides)
        policy_id = store.seed(Collection.RETENTION_POLICIES, policy_to_fields(policy))
        return policy.model_copy(update={"id": policy_id})

    return _seed


@pytest.fixture
def seed_document(store: InMemoryRecordStore) -> Callable[..., int]:
    """Store a policy document and return its id."""

    def _seed(created: datetime, **fields: Any) -> int:
        values = {"title": "Policy", "name": "Code of Conduct", "created": created}
        values.update(fields)
        return store.seed(Collection.POLICIES, values)

    return _seed


@pytest.fixture
def seed_acknowledgement(store: InMemoryRecordStore) -> Callable[..., int]:
    """Store an acknowledgement and return its id."""

    def _seed(created: datetime, **fields: Any) -> int:
        values = {"policy_id": 1, "user_id": 7, "user_email": "ana@example.com", "created": created}
        values.update(fields)
        return store.seed(Collection.ACKNOWLEDGEMENTS, values)

    return _seed


@pytest.fixture
def seed_hold(store: InMemoryRecordStore) -> Callable[..., int]:
    """Store an active legal hold and return its id."""

    def _seed(entity_type: EntityType, entity_id: int, **fields: Any) -> int:
        values: dict[str, Any] = {
            "entity_type": entity_type,
            "entity_id": entity_id,
            "reason": "Litigation hold",
            "requested_by_id": 1,
            "start_date": datetime(2026, 1, 1, tzinfo=UTC),
            "status": HoldStatus.ACTIVE,
        }
        values.update(fields)
        return store.seed(Collection.LEGAL_HOLDS, hold_to_fields(LegalHold(**values)))

    return _seed


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def session_factory(
    test_settings: Settings,
) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory over a fresh SQLite database."""
    engine = create_engine(test_settings)
    await init_models(engine)

    yield create_session_factory(engine)

    await engine.dispose()
