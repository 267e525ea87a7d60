"""Adapter implementations for external services."""

from pgprecheck.adapters.postgres_adapter import PostgresAdapter

__all__ = [
    "PostgresAdapter",
]
