"""Custodian: retention and legal-hold decision engine for governed records."""

__version__ = "0.1.0"
