"""
Utility modules for registry sync services.

Provides common utilities for:
- Structured logging
- Error handling
"""

from .logging import setup_logging, bind_organization, bind_service
from .errors import (
    RegistrySyncError,
    LedgerError,
    ContentFetchError,
    MetadataDecodeError,
    BundleExtractionError,
    SchemaCompileError,
    StorageError,
    ConfigurationError,
)

__all__ = [
    "setup_logging",
    "bind_organization",
    "bind_service",
    "RegistrySyncError",
    "LedgerError",
    "ContentFetchError",
    "MetadataDecodeError",
    "BundleExtractionError",
    "SchemaCompileError",
    "StorageError",
    "ConfigurationError",
]
