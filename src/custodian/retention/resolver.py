"""Action resolution for schedule entries."""

from custodian.config.settings import INDEFINITE_RETENTION
from custodian.retention.types import (
    NO_ACTION_LABEL,
    NOTIFY_APPROACHING_LABEL,
    ON_LEGAL_HOLD_LABEL,
    PERMANENT_RETENTION_LABEL,
    RetentionPolicy,
)


def resolve_action(
    days_until_expiry: int,
    is_on_legal_hold: bool,
    policy: RetentionPolicy,
    *,
    indefinite: bool | None = None,
) -> str:
    """Map expiry state and hold status to the required action label.

    Strict precedence: legal hold, indefinite retention, expired (the
    policy's expiry action verbatim), approaching expiry, no action.

    Args:
        days_until_expiry: Days remaining (-1 when indefinite)
        is_on_legal_hold: Whether the record is under an active hold
        policy: The policy governing the record
        indefinite: Whether retention is indefinite. When omitted it is
            inferred from the -1 sentinel.

    Returns:
        The action label
    """
    if is_on_legal_hold:
        return ON_LEGAL_HOLD_LABEL

    if indefinite is None:
        indefinite = days_until_expiry == INDEFINITE_RETENTION
    if indefinite:
        return PERMANENT_RETENTION_LABEL

    if days_until_expiry <= 0:
        return policy.action_on_expiry.value

    if policy.notify_before_days is not None and days_until_expiry <= policy.notify_before_days:
        return NOTIFY_APPROACHING_LABEL

    return NO_ACTION_LABEL
