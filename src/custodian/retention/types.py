"""Retention type definitions.

This module defines the core types for the retention engine:
- Enumerations for scopes, categories, start events, expiry actions and hold status
- RetentionPolicy: operator-configured retention rule
- PolicyRecord / AcknowledgementRecord: governed record schemas at the store boundary
- LegalHold / LegalHoldRequest: hold records and placement requests
- ScheduleEntry: computed join of a record, its policy and its hold state
- BatchResult: report produced by a retention processing run
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from custodian.config.settings import INDEFINITE_RETENTION

# Action labels produced by the resolver (besides the verbatim expiry actions)
ON_LEGAL_HOLD_LABEL = "On Legal Hold - No Action"
PERMANENT_RETENTION_LABEL = "Permanent Retention"
NOTIFY_APPROACHING_LABEL = "Notify - Approaching Expiry"
NO_ACTION_LABEL = "No Action Required"


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


class EntityType(str, Enum):
    """Types of governed records subject to retention."""

    POLICY = "Policy"
    """Policy document record."""

    ACKNOWLEDGEMENT = "Acknowledgement"
    """Acknowledgement receipt for a policy."""


class AppliesTo(str, Enum):
    """Scope of a retention policy."""

    POLICY = "Policy"
    ACKNOWLEDGEMENT = "Acknowledgement"
    AUDIT_LOG = "AuditLog"
    ALL = "All"

    def covers(self, entity_type: EntityType) -> bool:
        """Check whether this scope covers the given entity type."""
        return self is AppliesTo.ALL or self.value == entity_type.value


class RetentionCategory(str, Enum):
    """Named retention buckets, each with a default period."""

    STANDARD = "Standard"
    """3 years."""

    EXTENDED = "Extended"
    """7 years."""

    REGULATORY = "Regulatory"
    """Per regulatory requirement (7 years by default)."""

    LEGAL = "Legal"
    """Indefinite."""

    PERMANENT = "Permanent"
    """Never expires."""


class RetentionStartEvent(str, Enum):
    """Record timestamp the retention clock starts from."""

    CREATED = "Created"
    MODIFIED = "Modified"
    PUBLISHED = "Published"
    ARCHIVED = "Archived"
    ACKNOWLEDGED = "Acknowledged"


class ExpiryAction(str, Enum):
    """Action taken when a record's retention period expires."""

    DELETE = "Delete"
    """Archive, then physically remove (acknowledgements only)."""

    ARCHIVE = "Archive"
    """Copy to the retention archive and mark the original archived."""

    REVIEW = "Review"
    """Flag for manual review; nothing is mutated."""

    NOTIFY = "Notify"
    """Notify the configured recipients."""


class HoldStatus(str, Enum):
    """Lifecycle status of a legal hold."""

    ACTIVE = "Active"
    RELEASED = "Released"
    EXPIRED = "Expired"


class DataClassification(str, Enum):
    """Security classification of a policy document."""

    PUBLIC = "Public"
    INTERNAL = "Internal"
    CONFIDENTIAL = "Confidential"
    RESTRICTED = "Restricted"
    REGULATED = "Regulated"


class PolicyStatus(str, Enum):
    """Lifecycle status of a policy document."""

    DRAFT = "Draft"
    IN_REVIEW = "In Review"
    PENDING_APPROVAL = "Pending Approval"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    PUBLISHED = "Published"
    ARCHIVED = "Archived"
    RETIRED = "Retired"
    EXPIRED = "Expired"


# =============================================================================
# Retention Policy
# =============================================================================


class RetentionPolicy(BaseModel):
    """Retention policy configuration.

    Created and edited by operators; the engine only reads it.
    """

    id: int | None = None
    """Store-assigned identifier (None until persisted)."""

    name: str = Field(min_length=1)
    """Human-readable policy name."""

    description: str = ""
    """Policy description."""

    # Scope
    applies_to: AppliesTo
    """Entity types this policy governs."""

    data_classifications: list[DataClassification] = Field(default_factory=list)
    """Classifications matched (empty = no restriction)."""

    policy_categories: list[str] = Field(default_factory=list)
    """Policy categories matched (empty = no restriction)."""

    regulatory_frameworks: list[str] = Field(default_factory=list)
    """Frameworks matched by intersection (empty = no restriction)."""

    # Retention period
    retention_category: RetentionCategory
    """Retention bucket."""

    retention_period_days: int
    """Days to retain, or -1 for indefinite retention."""

    retention_start_event: RetentionStartEvent = RetentionStartEvent.CREATED
    """Which record timestamp starts the clock."""

    # Actions
    action_on_expiry: ExpiryAction = ExpiryAction.REVIEW
    """What happens when the period expires."""

    notify_before_days: int | None = None
    """Lead time for approaching-expiry notices."""

    notify_user_ids: list[int] = Field(default_factory=list)
    notify_emails: list[str] = Field(default_factory=list)

    # Exceptions
    exclude_on_legal_hold: bool = True
    """Stored with the policy. Held records are skipped whatever its value."""

    exclude_compliance_relevant: bool = False

    # Status
    is_active: bool = True
    priority: int = 10
    """Higher priority policies win over lower ones."""

    # Audit
    created_by_id: int | None = None
    created_date: datetime | None = None
    modified_by_id: int | None = None
    modified_date: datetime | None = None

    @field_validator("retention_period_days")
    @classmethod
    def validate_period(cls, value: int) -> int:
        """Period must be positive or the indefinite sentinel."""
        if value != INDEFINITE_RETENTION and value <= 0:
            raise ValueError(
                f"retention_period_days must be positive or {INDEFINITE_RETENTION}, got {value}"
            )
        return value

    @field_validator("notify_before_days")
    @classmethod
    def validate_notify_lead(cls, value: int | None) -> int | None:
        if value is not None and value < 0:
            raise ValueError("notify_before_days cannot be negative")
        return value

    @field_validator("created_date", "modified_date")
    @classmethod
    def normalize_dates(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)

    @property
    def is_indefinite(self) -> bool:
        """Whether records under this policy never expire."""
        return self.retention_period_days == INDEFINITE_RETENTION

    @property
    def notification_recipients(self) -> list[str]:
        """Email recipients for Notify actions."""
        return [email for email in self.notify_emails if email]


# =============================================================================
# Governed Records
# =============================================================================


class GovernedRecord(BaseModel):
    """Fields shared by every governed record."""

    model_config = {"extra": "ignore"}

    id: int
    title: str = ""
    created: datetime
    modified: datetime | None = None
    archived_date: datetime | None = None

    @field_validator("created", "modified", "archived_date", mode="after")
    @classmethod
    def normalize_dates(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)

    @property
    def display_name(self) -> str:
        return self.title or f"{type(self).__name__} {self.id}"


class PolicyRecord(GovernedRecord):
    """Policy document as seen by the retention engine."""

    name: str = ""
    policy_category: str | None = None
    status: PolicyStatus = PolicyStatus.DRAFT
    is_active: bool = True
    published_date: datetime | None = None

    # Classification
    data_classification: DataClassification | None = None
    retention_category: RetentionCategory | None = None
    regulatory_frameworks: list[str] = Field(default_factory=list)
    compliance_risk: str | None = None
    contains_pii: bool = False
    contains_phi: bool = False
    contains_financial_data: bool = False
    target_user_ids: list[int] = Field(default_factory=list)
    target_roles: list[str] = Field(default_factory=list)

    # Denormalized legal-hold flags
    is_legal_hold: bool = False
    legal_hold_reason: str | None = None
    legal_hold_start_date: datetime | None = None
    legal_hold_end_date: datetime | None = None

    @field_validator(
        "published_date", "legal_hold_start_date", "legal_hold_end_date", mode="after"
    )
    @classmethod
    def normalize_policy_dates(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)

    @field_validator("regulatory_frameworks", "target_user_ids", "target_roles", mode="before")
    @classmethod
    def none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def display_name(self) -> str:
        return self.name or self.title or f"Policy {self.id}"


class AcknowledgementRecord(GovernedRecord):
    """Acknowledgement receipt as seen by the retention engine."""

    policy_id: int | None = None
    user_id: int | None = None
    user_email: str = ""
    status: str = ""
    acknowledged_date: datetime | None = None
    is_archived: bool = False

    @field_validator("acknowledged_date", mode="after")
    @classmethod
    def normalize_ack_date(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)

    @property
    def display_name(self) -> str:
        if self.title:
            return self.title
        if self.user_email:
            return f"Acknowledgement {self.id} ({self.user_email})"
        return f"Acknowledgement {self.id}"


# =============================================================================
# Legal Holds
# =============================================================================


class LegalHold(BaseModel):
    """Record of a legal hold on a governed record."""

    model_config = {"extra": "ignore"}

    id: int | None = None
    entity_type: EntityType
    entity_id: int
    entity_name: str = ""
    reason: str
    case_reference: str | None = None
    requested_by_id: int
    requested_by_name: str = ""
    start_date: datetime
    end_date: datetime | None = None
    status: HoldStatus = HoldStatus.ACTIVE
    released_by_id: int | None = None
    released_by_name: str | None = None
    released_date: datetime | None = None
    release_reason: str | None = None
    notes: str | None = None

    @field_validator("start_date", "end_date", "released_date", mode="after")
    @classmethod
    def normalize_dates(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)

    @property
    def is_active(self) -> bool:
        return self.status == HoldStatus.ACTIVE


class LegalHoldRequest(BaseModel):
    """Request to place one or more records of a type on legal hold."""

    entity_type: EntityType
    entity_ids: list[int]
    reason: str = Field(min_length=1)
    start_date: datetime = Field(default_factory=utc_now)
    end_date: datetime | None = None
    case_reference: str | None = None
    notes: str | None = None

    @field_validator("start_date", "end_date", mode="after")
    @classmethod
    def normalize_dates(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


# =============================================================================
# Schedule and Batch Results
# =============================================================================


@dataclass
class ScheduleEntry:
    """Computed retention state of one governed record.

    Not persisted; recomputed on every schedule generation.
    """

    entity_type: EntityType
    entity_id: int
    entity_name: str

    # Matched policy
    retention_policy_id: int | None
    retention_policy_name: str
    retention_category: RetentionCategory
    retention_period_days: int

    # Dates
    created_date: datetime
    retention_start_date: datetime
    retention_expiry_date: datetime | None
    """None means indefinite retention."""

    days_until_expiry: int
    """-1 when retention is indefinite."""

    # Status
    is_on_legal_hold: bool = False
    legal_hold_reason: str | None = None
    action_required: str = NO_ACTION_LABEL

    # Classification
    data_classification: DataClassification | None = None
    regulatory_frameworks: list[str] = field(default_factory=list)

    @property
    def is_indefinite(self) -> bool:
        return self.retention_expiry_date is None

    @property
    def is_expired(self) -> bool:
        """Expired when a finite expiry has been reached."""
        return not self.is_indefinite and self.days_until_expiry <= 0


@dataclass(frozen=True)
class EntrySuccess:
    """A schedule entry that was processed without error."""

    entity_type: EntityType
    entity_id: int
    outcome: str
    """Expiry action applied, or "SkippedLegalHold"."""


@dataclass(frozen=True)
class EntryFailure:
    """A schedule entry whose processing raised."""

    entity_type: EntityType
    entity_id: int
    error: str


EntryOutcome = EntrySuccess | EntryFailure


@dataclass
class BatchResult:
    """Report of one retention processing run."""

    dry_run: bool = True
    total_processed: int = 0
    archived: int = 0
    deleted: int = 0
    review_required: int = 0
    notifications_sent: int = 0
    skipped_legal_hold: int = 0
    errors: list[str] = field(default_factory=list)
    outcomes: list[EntryOutcome] = field(default_factory=list)

    def record(self, outcome: EntryOutcome) -> None:
        """Append a per-entry outcome, collecting failures into errors."""
        self.outcomes.append(outcome)
        if isinstance(outcome, EntryFailure):
            self.errors.append(outcome.error)

    @property
    def succeeded(self) -> bool:
        return not self.errors

    def counters(self) -> dict[str, Any]:
        """Counters and errors as a JSON-friendly dict (for audit metadata)."""
        return {
            "dry_run": self.dry_run,
            "total_processed": self.total_processed,
            "archived": self.archived,
            "deleted": self.deleted,
            "review_required": self.review_required,
            "notifications_sent": self.notifications_sent,
            "skipped_legal_hold": self.skipped_legal_hold,
            "errors": list(self.errors),
        }
