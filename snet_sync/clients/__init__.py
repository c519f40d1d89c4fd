"""Clients for the ledger and content-addressed storage."""

from .ipfs import ContentStore, IpfsClient, normalize_locator
from .ledger import LedgerClient, load_ledger_factory

__all__ = [
    "ContentStore",
    "IpfsClient",
    "normalize_locator",
    "LedgerClient",
    "load_ledger_factory",
]
