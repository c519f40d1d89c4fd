"""
Storage abstractions for registry sync services.

Provides an async PostgreSQL client for the relational registry store.
"""

from .postgres import PostgresClient, PostgresConfig

__all__ = [
    "PostgresClient",
    "PostgresConfig",
]
