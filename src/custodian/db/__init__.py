"""Persistence layer for Custodian (async SQLAlchemy)."""
