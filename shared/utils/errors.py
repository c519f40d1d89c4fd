"""
Custom error classes for registry sync services.

Provides structured error handling with error codes,
per-error details, and proper exception chaining.
"""

from typing import Optional, Dict, Any


class RegistrySyncError(Exception):
    """Base exception for registry sync errors."""

    def __init__(
        self,
        message: str,
        error_code: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class LedgerError(RegistrySyncError):
    """Error raised when a ledger lookup fails."""

    def __init__(
        self,
        message: str,
        method: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="LEDGER_ERROR",
            details=details or {}
        )
        self.method = method

        if method:
            self.details["method"] = method


class ContentFetchError(RegistrySyncError):
    """Error raised when content-addressed storage cannot return a file."""

    def __init__(
        self,
        message: str,
        locator: Optional[str] = None,
        status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="CONTENT_FETCH_ERROR",
            details=details or {}
        )
        self.locator = locator
        self.status = status

        if locator:
            self.details["locator"] = locator
        if status is not None:
            self.details["status"] = status


class MetadataDecodeError(RegistrySyncError):
    """Error raised when a metadata document is not valid JSON of the expected shape."""

    def __init__(
        self,
        message: str,
        kind: Optional[str] = None,
        content: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="METADATA_DECODE_ERROR",
            details=details or {}
        )
        self.kind = kind
        self.content = content

        if kind:
            self.details["kind"] = kind
        if content is not None:
            self.details["content"] = content


class BundleExtractionError(RegistrySyncError):
    """Error raised when a schema bundle archive cannot be read."""

    def __init__(
        self,
        message: str,
        size: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="BUNDLE_EXTRACTION_ERROR",
            details=details or {}
        )
        self.size = size

        if size is not None:
            self.details["size"] = size


class SchemaCompileError(RegistrySyncError):
    """Error raised when a schema source file fails to compile."""

    def __init__(
        self,
        message: str,
        file_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="SCHEMA_COMPILE_ERROR",
            details=details or {}
        )
        self.file_name = file_name

        if file_name:
            self.details["file_name"] = file_name


class StorageError(RegistrySyncError):
    """Error raised when storage operations fail."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="STORAGE_ERROR",
            details=details or {}
        )
        self.operation = operation
        self.table = table

        if operation:
            self.details["operation"] = operation
        if table:
            self.details["table"] = table


class ConfigurationError(RegistrySyncError):
    """Error raised when configuration is invalid."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            details=details or {}
        )
        self.config_key = config_key
        self.config_value = config_value

        if config_key:
            self.details["config_key"] = config_key
        if config_value is not None:
            self.details["config_value"] = str(config_value)

