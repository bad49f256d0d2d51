"""Data classification of policy documents.

Classifying a policy document sets its security classification, schedules
the next classification review and derives the retention category that
retention policies match on.
"""

from dataclasses import dataclass, field
from datetime import datetime

import structlog
from dateutil.relativedelta import relativedelta

from custodian.core.audit import AuditEmitter
from custodian.core.context import ActorResolver
from custodian.db.models.audit import AuditEventType, AuditSeverity
from custodian.retention.store import Collection, RecordStore
from custodian.retention.types import (
    DataClassification,
    PolicyRecord,
    RetentionCategory,
    utc_now,
)

logger = structlog.get_logger()

HIGH_REGULATION_FRAMEWORKS = frozenset({"HIPAA", "PCI-DSS", "SOX"})
HIGH_RISK_LEVELS = frozenset({"Critical", "High"})

_RETENTION_BY_CLASSIFICATION = {
    DataClassification.REGULATED: RetentionCategory.REGULATORY,
    DataClassification.RESTRICTED: RetentionCategory.EXTENDED,
    DataClassification.CONFIDENTIAL: RetentionCategory.EXTENDED,
    DataClassification.INTERNAL: RetentionCategory.STANDARD,
    DataClassification.PUBLIC: RetentionCategory.STANDARD,
}

_HANDLING_INSTRUCTIONS = {
    DataClassification.RESTRICTED: (
        "Encrypt at Rest",
        "Encrypt in Transit",
        "No External Sharing",
        "Audit All Access",
        "Approval Required for Access",
    ),
    DataClassification.REGULATED: (
        "Encrypt at Rest",
        "Encrypt in Transit",
        "Audit All Access",
        "Regulatory Compliance Required",
    ),
    DataClassification.CONFIDENTIAL: (
        "No External Sharing",
        "Watermark on Print/Download",
    ),
    DataClassification.INTERNAL: ("Internal Use Only",),
    DataClassification.PUBLIC: ("No Restrictions",),
}


@dataclass
class ClassificationSuggestion:
    """Suggested classification for a policy document."""

    classification: DataClassification
    reasons: list[str] = field(default_factory=list)
    handling_instructions: list[str] = field(default_factory=list)


def retention_for_classification(classification: DataClassification) -> RetentionCategory:
    """Retention category implied by a data classification."""
    return _RETENTION_BY_CLASSIFICATION[classification]


def handling_instructions(classification: DataClassification) -> list[str]:
    """Handling instructions for a data classification."""
    return list(_HANDLING_INSTRUCTIONS[classification])


def review_date_for(classification: DataClassification, now: datetime | None = None) -> datetime:
    """Next classification review date.

    Restricted and Regulated documents are reviewed after 6 months,
    Confidential after a year, everything else after two years.
    """
    now = now or utc_now()
    if classification in (DataClassification.RESTRICTED, DataClassification.REGULATED):
        return now + relativedelta(months=6)
    if classification == DataClassification.CONFIDENTIAL:
        return now + relativedelta(years=1)
    return now + relativedelta(years=2)


def suggest_classification(record: PolicyRecord) -> ClassificationSuggestion:
    """Suggest a classification from a policy document's content indicators.

    Args:
        record: The policy document

    Returns:
        Suggested classification, the reasons behind it and its
        handling instructions
    """
    reasons: list[str] = []
    classification = DataClassification.INTERNAL

    if record.contains_pii:
        classification = DataClassification.CONFIDENTIAL
        reasons.append("Contains personally identifiable information (PII)")

    if record.contains_phi:
        classification = DataClassification.REGULATED
        reasons.append("Contains protected health information (PHI)")

    if record.contains_financial_data:
        classification = DataClassification.CONFIDENTIAL
        reasons.append("Contains financial data")

    if record.compliance_risk in HIGH_RISK_LEVELS:
        if classification != DataClassification.REGULATED:
            classification = DataClassification.CONFIDENTIAL
        reasons.append(f"High compliance risk level ({record.compliance_risk})")

    if HIGH_REGULATION_FRAMEWORKS & set(record.regulatory_frameworks):
        classification = DataClassification.REGULATED
        reasons.append(
            f"Subject to regulatory framework: {', '.join(record.regulatory_frameworks)}"
        )

    if record.target_user_ids or len(record.target_roles) == 1:
        if classification == DataClassification.INTERNAL:
            classification = DataClassification.CONFIDENTIAL
        reasons.append("Has restricted distribution targeting")

    if not reasons:
        reasons.append("No sensitive data indicators detected")

    return ClassificationSuggestion(
        classification=classification,
        reasons=reasons,
        handling_instructions=handling_instructions(classification),
    )


class ClassificationService:
    """Applies data classifications to policy documents."""

    def __init__(self, store: RecordStore, audit: AuditEmitter, actors: ActorResolver):
        self._store = store
        self._audit = audit
        self._actors = actors

    async def apply_data_classification(
        self,
        policy_id: int,
        classification: DataClassification,
        justification: str,
        regulatory_frameworks: list[str] | None = None,
    ) -> dict:
        """Classify a policy document.

        Args:
            policy_id: Id of the policy document
            classification: New classification
            justification: Why the classification applies
            regulatory_frameworks: Frameworks to record; left unchanged if None

        Returns:
            The fields written to the policy document

        Raises:
            RecordNotFoundError: If the policy document does not exist
            RecordStoreUnavailableError: If the store cannot be updated
        """
        actor = self._actors.resolve_actor()
        now = utc_now()
        category = retention_for_classification(classification)

        update = {
            "data_classification": classification.value,
            "classification_justification": justification,
            "classified_by_id": actor.id,
            "classified_date": now,
            "classification_review_date": review_date_for(classification, now),
            "retention_category": category.value,
        }
        if regulatory_frameworks is not None:
            update["regulatory_frameworks"] = list(regulatory_frameworks)

        await self._store.update(Collection.POLICIES, policy_id, update)

        logger.info(
            "data_classification_applied",
            policy_id=policy_id,
            classification=classification.value,
            retention_category=category.value,
        )
        await self._audit.emit(
            AuditEventType.CLASSIFICATION_APPLIED,
            severity=(
                AuditSeverity.WARNING
                if classification == DataClassification.RESTRICTED
                else AuditSeverity.INFO
            ),
            entity_type="Policy",
            entity_id=policy_id,
            policy_id=policy_id,
            description=f'Data classification set to "{classification.value}"',
            metadata={
                "classification": classification.value,
                "justification": justification,
                "regulatory_frameworks": regulatory_frameworks,
            },
            actor=actor,
        )
        return update

    def suggest_classification(self, record: PolicyRecord) -> ClassificationSuggestion:
        return suggest_classification(record)
