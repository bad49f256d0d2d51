"""Retention date arithmetic.

ScheduleCalculator owns the default retention period table and turns a
record plus its policy into a retention start date, an expiry date and the
number of days remaining.
"""

import math
from collections.abc import Mapping
from datetime import datetime, timedelta
from types import MappingProxyType

from custodian.config.settings import INDEFINITE_RETENTION, RetentionSettings
from custodian.retention.mapping import GovernedRecordModel
from custodian.retention.types import (
    AcknowledgementRecord,
    PolicyRecord,
    RetentionCategory,
    RetentionStartEvent,
    as_utc,
    utc_now,
)

SECONDS_PER_DAY = 86400


def default_period_table(settings: RetentionSettings | None = None) -> Mapping[RetentionCategory, int]:
    """Build the immutable default-period table from retention settings."""
    periods = (settings or RetentionSettings()).default_periods()
    return MappingProxyType({RetentionCategory(name): days for name, days in periods.items()})


class ScheduleCalculator:
    """Computes retention start, expiry and days remaining.

    The default-period table is fixed at construction. Legal and Permanent
    categories are always indefinite.
    """

    def __init__(self, default_periods: Mapping[RetentionCategory, int] | None = None):
        """Initialize the calculator.

        Args:
            default_periods: Period in days per category; defaults to the
                values from RetentionSettings
        """
        table = dict(default_period_table())
        if default_periods:
            table.update(default_periods)
        table[RetentionCategory.LEGAL] = INDEFINITE_RETENTION
        table[RetentionCategory.PERMANENT] = INDEFINITE_RETENTION
        self._periods: Mapping[RetentionCategory, int] = MappingProxyType(table)

    @classmethod
    def from_settings(cls, settings: RetentionSettings) -> "ScheduleCalculator":
        return cls(default_period_table(settings))

    @property
    def default_periods(self) -> Mapping[RetentionCategory, int]:
        return self._periods

    # =========================================================================
    # Category Defaults
    # =========================================================================

    def period_for_category(self, category: RetentionCategory) -> int:
        """Default period in days for a category (-1 for indefinite)."""
        return self._periods[category]

    def is_indefinite(self, category: RetentionCategory) -> bool:
        return self._periods[category] == INDEFINITE_RETENTION

    def expiry_for_category(
        self, category: RetentionCategory, start: datetime | None = None
    ) -> datetime | None:
        """Expiry date for a category's default period, starting now unless given."""
        return self.compute_expiry(start or utc_now(), self.period_for_category(category))

    # =========================================================================
    # Record Dates
    # =========================================================================

    def compute_start(
        self, record: GovernedRecordModel, start_event: RetentionStartEvent
    ) -> datetime:
        """Select the timestamp that starts the retention clock.

        Falls back to the record's creation date when the requested
        timestamp is absent or not carried by the record type.
        """
        candidate: datetime | None = None

        if start_event == RetentionStartEvent.MODIFIED:
            candidate = record.modified
        elif start_event == RetentionStartEvent.ARCHIVED:
            candidate = record.archived_date
        elif start_event == RetentionStartEvent.PUBLISHED and isinstance(record, PolicyRecord):
            candidate = record.published_date
        elif start_event == RetentionStartEvent.ACKNOWLEDGED and isinstance(
            record, AcknowledgementRecord
        ):
            candidate = record.acknowledged_date

        return as_utc(candidate or record.created)

    def compute_expiry(self, start: datetime, period_days: int) -> datetime | None:
        """Expiry date, or None for indefinite retention."""
        if period_days == INDEFINITE_RETENTION:
            return None
        return start + timedelta(days=period_days)

    def days_until_expiry(self, expiry: datetime | None, now: datetime | None = None) -> int:
        """Whole days remaining, rounded up; -1 when retention is indefinite."""
        if expiry is None:
            return INDEFINITE_RETENTION
        remaining = (as_utc(expiry) - as_utc(now or utc_now())).total_seconds()
        return math.ceil(remaining / SECONDS_PER_DAY)
