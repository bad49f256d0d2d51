"""Mapping between raw store fields and retention engine schemas.

Raw records from the store are validated here, once, at the boundary.
Everything past this module works with typed models.
"""

from datetime import datetime

from pydantic import ValidationError
from pydantic_core import to_json

from custodian.core.context import ActorIdentity
from custodian.core.exceptions import MalformedPolicyConfigError
from custodian.retention.store import Fields
from custodian.retention.types import (
    AcknowledgementRecord,
    EntityType,
    LegalHold,
    PolicyRecord,
    RetentionPolicy,
)

GovernedRecordModel = PolicyRecord | AcknowledgementRecord


def policy_from_fields(fields: Fields) -> RetentionPolicy:
    """Validate a stored retention policy.

    Raises:
        MalformedPolicyConfigError: If the stored configuration is unusable
    """
    try:
        return RetentionPolicy.model_validate(fields)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise MalformedPolicyConfigError(
            fields.get("id"),
            problems,
            policy_name=fields.get("name"),
        ) from e


def policy_to_fields(policy: RetentionPolicy) -> Fields:
    """Serialize a retention policy for storage (without its id)."""
    return policy.model_dump(mode="json", exclude={"id"})


def record_from_fields(entity_type: EntityType, fields: Fields) -> GovernedRecordModel:
    """Validate a governed record of the given type."""
    if entity_type == EntityType.POLICY:
        return PolicyRecord.model_validate(fields)
    return AcknowledgementRecord.model_validate(fields)


def hold_from_fields(fields: Fields) -> LegalHold:
    """Validate a stored legal hold."""
    return LegalHold.model_validate(fields)


def hold_to_fields(hold: LegalHold) -> Fields:
    """Serialize a legal hold for storage (without its id)."""
    fields = hold.model_dump(mode="json", exclude={"id"})
    fields["title"] = f"{hold.entity_type.value} - {hold.entity_id}"
    return fields


def archive_fields(
    entity_type: EntityType,
    original: Fields,
    *,
    actor: ActorIdentity,
    archived_at: datetime,
    retention_policy_id: int | None,
    retention_policy_name: str,
) -> Fields:
    """Build the retention-archive copy of a record.

    The snapshot holds the record's full current field set as JSON.
    """
    snapshot = to_json(original, fallback=str).decode()
    return {
        "title": original.get("title") or original.get("name") or "",
        "original_entity_type": entity_type.value,
        "original_entity_id": original["id"],
        "original_data": snapshot,
        "archived_date": archived_at,
        "archived_by_id": actor.id,
        "archived_by_name": actor.display_name,
        "retention_policy_id": retention_policy_id,
        "retention_policy_name": retention_policy_name,
    }
