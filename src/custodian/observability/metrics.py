"""Prometheus metrics for Custodian observability.

This module provides Prometheus metrics for monitoring:
- Retention schedule generation (duration, entry counts)
- Retention actions taken per expiry action and dry-run mode
- Per-entry processing failures
- Active legal holds
"""

from __future__ import annotations

import os
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)

if TYPE_CHECKING:
    from collections.abc import Generator

__all__ = [
    "MetricsConfig",
    "MetricsManager",
    "SCHEDULE_BUILD_DURATION",
    "SCHEDULE_ENTRIES",
    "RETENTION_ACTIONS",
    "RETENTION_ERRORS",
    "ACTIVE_LEGAL_HOLDS",
    "observe_schedule_build",
    "record_retention_action",
    "record_retention_error",
    "record_active_holds",
    "get_metrics",
    "create_metrics_manager",
]


@dataclass
class MetricsConfig:
    """Configuration for Prometheus metrics.

    Attributes:
        enabled: Whether metrics collection is enabled.
        prefix: Prefix for all metric names.
    """

    enabled: bool = True
    prefix: str = "custodian"

    @classmethod
    def from_env(cls) -> MetricsConfig:
        """Create configuration from environment variables."""
        return cls(
            enabled=os.getenv("METRICS_ENABLED", "true").lower() == "true",
            prefix=os.getenv("METRICS_PREFIX", "custodian"),
        )


# Default configuration
_config = MetricsConfig()

# ============================================================================
# Schedule Metrics
# ============================================================================

SCHEDULE_BUILD_DURATION = Histogram(
    f"{_config.prefix}_schedule_build_duration_seconds",
    "Time to generate a retention schedule",
    ["status"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

SCHEDULE_ENTRIES = Gauge(
    f"{_config.prefix}_schedule_entries",
    "Number of entries in the most recent retention schedule",
)

# ============================================================================
# Retention Action Metrics
# ============================================================================

RETENTION_ACTIONS = Counter(
    f"{_config.prefix}_retention_actions_total",
    "Retention actions resolved during batch processing",
    ["action", "dry_run"],
)

RETENTION_ERRORS = Counter(
    f"{_config.prefix}_retention_errors_total",
    "Schedule entries whose processing failed",
    ["entity_type"],
)

# ============================================================================
# Legal Hold Metrics
# ============================================================================

ACTIVE_LEGAL_HOLDS = Gauge(
    f"{_config.prefix}_active_legal_holds",
    "Number of active legal holds seen by the last schedule pass",
)

# Service info
SERVICE_INFO = Info(
    f"{_config.prefix}_service",
    "Service information",
)


class MetricsManager:
    """Manages Prometheus metrics configuration and export."""

    def __init__(
        self,
        config: MetricsConfig | None = None,
        registry: CollectorRegistry | None = None,
    ) -> None:
        """Initialize the metrics manager.

        Args:
            config: Metrics configuration.
            registry: Optional custom registry for testing.
        """
        self.config = config or MetricsConfig()
        self.registry = registry or REGISTRY
        self._initialized = False

    def initialize(
        self,
        service_name: str = "custodian",
        service_version: str = "0.1.0",
        environment: str = "development",
    ) -> None:
        """Publish service information once."""
        if self._initialized or not self.config.enabled:
            return

        SERVICE_INFO.info(
            {
                "name": service_name,
                "version": service_version,
                "environment": environment,
            }
        )

        self._initialized = True

    def get_metrics(self) -> bytes:
        """Generate metrics output in Prometheus format."""
        return generate_latest(self.registry)


# Global metrics manager
_metrics_manager: MetricsManager | None = None


def get_metrics_manager() -> MetricsManager:
    """Get the global metrics manager instance."""
    global _metrics_manager
    if _metrics_manager is None:
        _metrics_manager = MetricsManager(MetricsConfig.from_env())
    return _metrics_manager


def create_metrics_manager(
    config: MetricsConfig | None = None,
    registry: CollectorRegistry | None = None,
) -> MetricsManager:
    """Create and register a new metrics manager."""
    global _metrics_manager
    _metrics_manager = MetricsManager(config, registry)
    return _metrics_manager


def get_metrics() -> bytes:
    """Get current metrics in Prometheus format."""
    return get_metrics_manager().get_metrics()


# ============================================================================
# Convenience Functions for Recording Metrics
# ============================================================================


@contextmanager
def observe_schedule_build() -> Generator[dict[str, Any], None, None]:
    """Context manager for observing schedule generation.

    Yields:
        Context dict; set "entries" to the schedule size.
    """
    context: dict[str, Any] = {"status": "success", "entries": None}
    start_time = time.perf_counter()

    try:
        yield context
    except Exception:
        context["status"] = "error"
        raise
    finally:
        duration = time.perf_counter() - start_time
        SCHEDULE_BUILD_DURATION.labels(status=context["status"]).observe(duration)
        if context.get("entries") is not None:
            SCHEDULE_ENTRIES.set(context["entries"])


def record_retention_action(action: str, dry_run: bool) -> None:
    """Record one resolved retention action."""
    RETENTION_ACTIONS.labels(action=action, dry_run=str(dry_run).lower()).inc()


def record_retention_error(entity_type: str) -> None:
    """Record a failed schedule entry."""
    RETENTION_ERRORS.labels(entity_type=entity_type).inc()


def record_active_holds(count: int) -> None:
    """Record the number of active legal holds."""
    ACTIVE_LEGAL_HOLDS.set(count)
