"""Observability module for Custodian.

Prometheus metrics for retention sweeps and legal holds:

    from custodian.observability import observe_schedule_build, record_retention_action

    with observe_schedule_build() as ctx:
        schedule = builder.build(...)
        ctx["entries"] = len(schedule)

    record_retention_action("Archive", dry_run=False)
"""

from custodian.observability.metrics import (
    ACTIVE_LEGAL_HOLDS,
    RETENTION_ACTIONS,
    RETENTION_ERRORS,
    SCHEDULE_BUILD_DURATION,
    SCHEDULE_ENTRIES,
    MetricsConfig,
    MetricsManager,
    create_metrics_manager,
    get_metrics,
    get_metrics_manager,
    observe_schedule_build,
    record_active_holds,
    record_retention_action,
    record_retention_error,
)

__all__ = [
    "ACTIVE_LEGAL_HOLDS",
    "RETENTION_ACTIONS",
    "RETENTION_ERRORS",
    "SCHEDULE_BUILD_DURATION",
    "SCHEDULE_ENTRIES",
    "MetricsConfig",
    "MetricsManager",
    "create_metrics_manager",
    "get_metrics",
    "get_metrics_manager",
    "observe_schedule_build",
    "record_active_holds",
    "record_retention_action",
    "record_retention_error",
]
