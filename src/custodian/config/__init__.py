"""Configuration module for Custodian."""

from custodian.config.settings import RetentionSettings, Settings, get_settings

__all__ = ["Settings", "RetentionSettings", "get_settings"]
