"""Application settings loaded from environment variables."""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

INDEFINITE_RETENTION = -1
"""Sentinel retention period meaning "never expires"."""


class RetentionSettings(BaseModel):
    """Defaults for retention policy creation and schedule generation.

    Legal and Permanent categories are always indefinite and are not
    configurable here.
    """

    # Default periods by category (days)
    standard_days: int = Field(default=1095, gt=0)
    """Standard category: 3 years."""

    extended_days: int = Field(default=2555, gt=0)
    """Extended category: 7 years."""

    regulatory_days: int = Field(default=2555, gt=0)
    """Regulatory category: 7 years unless a policy overrides it."""

    # Policy creation defaults
    default_priority: int = 10
    default_action_on_expiry: Literal["Delete", "Archive", "Review", "Notify"] = "Review"
    default_start_event: Literal["Created", "Modified", "Published", "Archived", "Acknowledged"] = (
        "Created"
    )

    # Page sizes for collection reads
    policy_fetch_limit: int = Field(default=100, gt=0)
    record_fetch_limit: int = Field(default=500, gt=0)
    hold_fetch_limit: int = Field(default=1000, gt=0)

    def default_periods(self) -> dict[str, int]:
        """Get the default retention period table keyed by category name."""
        return {
            "Standard": self.standard_days,
            "Extended": self.extended_days,
            "Regulatory": self.regulatory_days,
            "Legal": INDEFINITE_RETENTION,
            "Permanent": INDEFINITE_RETENTION,
        }


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Configuration
    ENVIRONMENT: Literal["development", "test", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./custodian.db"
    DEBUG: bool = False

    # Metrics
    metrics_enabled: bool = True
    metrics_prefix: str = "custodian"

    # Retention Configuration
    retention: RetentionSettings = RetentionSettings()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
