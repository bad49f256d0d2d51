"""Utility modules for Custodian."""

from custodian.utils.exceptions import (
    ConfigurationError,
    CustodianError,
)

__all__ = [
    "CustodianError",
    "ConfigurationError",
]
