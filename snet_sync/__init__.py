"""
Registry sync service package.

Mirrors the SingularityNET registry (organizations and services recorded
on-chain, metadata and protobuf bundles on IPFS) into PostgreSQL and keeps
an in-memory index of every service's gRPC schema.

Modules:
- syncer: one sync pass over the ledger
- scheduler: periodic execution of passes
- registry: compiled descriptors and their HTML summary
- compiler, bundle, decoder: adapters for schema sources and metadata
- clients, storage: ledger/IPFS interfaces and PostgreSQL persistence
"""

from .registry import SchemaRegistry
from .syncer import SnetSyncer, SyncPassStats

__all__ = [
    "SchemaRegistry",
    "SnetSyncer",
    "SyncPassStats",
]
