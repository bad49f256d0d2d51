"""Retention policy configuration.

RetentionPolicyService creates and loads retention policies. Stored
policies are validated once, when they are loaded; an unusable policy stops
the load instead of surfacing per record.

create_default_policies() returns the policy set shipped with Custodian.
"""

import structlog
from pydantic import BaseModel, Field

from custodian.config.settings import INDEFINITE_RETENTION, RetentionSettings
from custodian.core.audit import AuditEmitter
from custodian.core.context import ActorResolver
from custodian.db.models.audit import AuditEventType
from custodian.retention.calculator import ScheduleCalculator
from custodian.retention.mapping import policy_from_fields, policy_to_fields
from custodian.retention.matcher import priority_order
from custodian.retention.store import Collection, RecordStore, query_all
from custodian.retention.types import (
    AppliesTo,
    DataClassification,
    ExpiryAction,
    RetentionCategory,
    RetentionPolicy,
    RetentionStartEvent,
    utc_now,
)

logger = structlog.get_logger()

# Standard retention periods (days)
SEVEN_YEARS = 2555
THREE_YEARS = 1095
ONE_YEAR = 365


class RetentionPolicyDraft(BaseModel):
    """Operator input for a new retention policy.

    Unset fields take the configured defaults when the policy is created.
    """

    name: str = Field(min_length=1)
    description: str = ""
    applies_to: AppliesTo
    data_classifications: list[DataClassification] = Field(default_factory=list)
    policy_categories: list[str] = Field(default_factory=list)
    regulatory_frameworks: list[str] = Field(default_factory=list)
    retention_category: RetentionCategory = RetentionCategory.STANDARD
    retention_period_days: int | None = None
    retention_start_event: RetentionStartEvent | None = None
    action_on_expiry: ExpiryAction | None = None
    notify_before_days: int | None = None
    notify_user_ids: list[int] = Field(default_factory=list)
    notify_emails: list[str] = Field(default_factory=list)
    exclude_on_legal_hold: bool = True
    exclude_compliance_relevant: bool = False
    is_active: bool = True
    priority: int | None = None


class RetentionPolicyService:
    """Creates, loads and looks up retention policies."""

    def __init__(
        self,
        store: RecordStore,
        audit: AuditEmitter,
        actors: ActorResolver,
        calculator: ScheduleCalculator | None = None,
        settings: RetentionSettings | None = None,
    ):
        self._store = store
        self._audit = audit
        self._actors = actors
        self._settings = settings or RetentionSettings()
        self._calculator = calculator or ScheduleCalculator.from_settings(self._settings)

    async def create_policy(self, draft: RetentionPolicyDraft) -> RetentionPolicy:
        """Persist a new retention policy.

        The period defaults to the category's default period; start event,
        expiry action and priority default from settings.

        Args:
            draft: Operator input

        Returns:
            The stored policy with its id

        Raises:
            MalformedPolicyConfigError: If the resulting policy is invalid
            RecordStoreUnavailableError: If the store cannot be written
        """
        actor = self._actors.resolve_actor()
        fields = draft.model_dump(mode="json")
        defaults = {
            "retention_period_days": self._calculator.period_for_category(
                draft.retention_category
            ),
            "retention_start_event": self._settings.default_start_event,
            "action_on_expiry": self._settings.default_action_on_expiry,
            "priority": self._settings.default_priority,
        }
        for name, default in defaults.items():
            if fields[name] is None:
                fields[name] = default
        fields["created_by_id"] = actor.id
        fields["created_date"] = utc_now()

        policy = policy_from_fields(fields)
        policy_id = await self._store.add(Collection.RETENTION_POLICIES, policy_to_fields(policy))
        policy = policy.model_copy(update={"id": policy_id})

        logger.info(
            "retention_policy_created",
            policy_id=policy_id,
            name=policy.name,
            category=policy.retention_category.value,
            period_days=policy.retention_period_days,
        )
        await self._audit.emit(
            AuditEventType.SETTINGS_CHANGED,
            entity_type="System",
            entity_id=policy_id,
            description=f'Retention policy "{policy.name}" created',
            metadata={"retention_policy": policy_to_fields(policy)},
            actor=actor,
        )
        return policy

    async def load_active_policies(self) -> list[RetentionPolicy]:
        """Load active policies in evaluation order.

        Raises:
            MalformedPolicyConfigError: If any active policy is unusable
            RecordStoreUnavailableError: If the store cannot be read
        """
        rows = await query_all(
            self._store,
            Collection.RETENTION_POLICIES,
            {"is_active": True},
            page_size=self._settings.policy_fetch_limit,
        )
        policies = [policy_from_fields(row) for row in rows]
        logger.debug("retention_policies_loaded", count=len(policies))
        return priority_order(policies)

    async def get_policy(self, policy_id: int) -> RetentionPolicy:
        """Fetch one policy by id.

        Raises:
            RecordNotFoundError: If the policy does not exist
            MalformedPolicyConfigError: If it is unusable
        """
        return policy_from_fields(await self._store.get(Collection.RETENTION_POLICIES, policy_id))

    async def install_default_policies(self) -> list[RetentionPolicy]:
        """Store the shipped default policies if no retention policy exists yet.

        Returns:
            The policies created (empty when policies were already configured)
        """
        existing = await self._store.query(Collection.RETENTION_POLICIES, limit=1)
        if existing:
            return []

        created = []
        for policy in create_default_policies():
            draft = RetentionPolicyDraft.model_validate(
                policy.model_dump(exclude={"id", "created_by_id", "created_date"})
            )
            created.append(await self.create_policy(draft))
        return created


def create_default_policies() -> list[RetentionPolicy]:
    """Create the default set of retention policies.

    Returns:
        List of unsaved RetentionPolicy instances
    """
    policies = []

    # =========================================================================
    # Regulated documents - 7 years, archived (HIPAA, SOX, PCI-DSS)
    # =========================================================================
    policies.append(
        RetentionPolicy(
            name="Regulated Policy Retention",
            description="Policies subject to regulatory frameworks are kept 7 years, then archived",
            applies_to=AppliesTo.POLICY,
            data_classifications=[DataClassification.REGULATED],
            retention_category=RetentionCategory.REGULATORY,
            retention_period_days=SEVEN_YEARS,
            action_on_expiry=ExpiryAction.ARCHIVE,
            notify_before_days=90,
            priority=50,
        )
    )

    # =========================================================================
    # Confidential documents - 7 years, review
    # =========================================================================
    policies.append(
        RetentionPolicy(
            name="Confidential Policy Retention",
            description="Confidential and restricted policies are reviewed after 7 years",
            applies_to=AppliesTo.POLICY,
            data_classifications=[DataClassification.CONFIDENTIAL, DataClassification.RESTRICTED],
            retention_category=RetentionCategory.EXTENDED,
            retention_period_days=SEVEN_YEARS,
            action_on_expiry=ExpiryAction.REVIEW,
            notify_before_days=60,
            priority=40,
        )
    )

    # =========================================================================
    # All other policy documents - 3 years from publication
    # =========================================================================
    policies.append(
        RetentionPolicy(
            name="Standard Policy Retention",
            description="Default retention for policy documents (3 years from publication)",
            applies_to=AppliesTo.POLICY,
            retention_category=RetentionCategory.STANDARD,
            retention_period_days=THREE_YEARS,
            retention_start_event=RetentionStartEvent.PUBLISHED,
            action_on_expiry=ExpiryAction.ARCHIVE,
            notify_before_days=30,
            priority=10,
        )
    )

    # =========================================================================
    # Acknowledgements - 7 years from acknowledgement, then purged
    # =========================================================================
    policies.append(
        RetentionPolicy(
            name="Acknowledgement Retention",
            description="Acknowledgement receipts are archived and purged after 7 years",
            applies_to=AppliesTo.ACKNOWLEDGEMENT,
            retention_category=RetentionCategory.EXTENDED,
            retention_period_days=SEVEN_YEARS,
            retention_start_event=RetentionStartEvent.ACKNOWLEDGED,
            action_on_expiry=ExpiryAction.DELETE,
            priority=10,
        )
    )

    # =========================================================================
    # Litigation records - indefinite
    # =========================================================================
    policies.append(
        RetentionPolicy(
            name="Legal Records",
            description="Policies in the Legal category are kept indefinitely",
            applies_to=AppliesTo.POLICY,
            policy_categories=["Legal"],
            retention_category=RetentionCategory.LEGAL,
            retention_period_days=INDEFINITE_RETENTION,
            action_on_expiry=ExpiryAction.REVIEW,
            priority=100,
        )
    )

    return policies
