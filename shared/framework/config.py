"""
Configuration management for registry sync services.

Provides typed configuration classes with environment variable
injection and validation.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Any


@dataclass
class DatabaseConfig:
    """Database configuration."""
    postgres_dsn: str = field(default_factory=lambda: os.getenv("SNET_SYNC_POSTGRES_DSN", "postgresql://localhost:5432/snet_registry"))
    postgres_min_size: int = field(default_factory=lambda: int(os.getenv("SNET_SYNC_POSTGRES_POOL_MIN", "1")))
    postgres_max_size: int = field(default_factory=lambda: int(os.getenv("SNET_SYNC_POSTGRES_POOL_MAX", "5")))
    postgres_timeout: int = field(default_factory=lambda: int(os.getenv("SNET_SYNC_POSTGRES_TIMEOUT", "30")))


@dataclass
class ObservabilityConfig:
    """Observability configuration."""
    log_level: str = field(default_factory=lambda: os.getenv("SNET_SYNC_LOG_LEVEL", "info"))
    log_format: str = field(default_factory=lambda: os.getenv("SNET_SYNC_LOG_FORMAT", "json"))
    health_port: int = field(default_factory=lambda: int(os.getenv("SNET_SYNC_HEALTH_PORT", "8080")))


@dataclass
class ServiceConfig:
    """Base service configuration."""
    service_name: str
    environment: str = field(default_factory=lambda: os.getenv("SNET_SYNC_ENV", "local"))

    # Sub-configurations
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.service_name:
            raise ValueError("service_name is required")

        if self.environment not in ["local", "dev", "staging", "prod"]:
            raise ValueError(f"Invalid environment: {self.environment}")

        if self.observability.log_format not in ["json", "console"]:
            raise ValueError(f"Invalid log format: {self.observability.log_format}")

    @classmethod
    def from_env(cls, service_name: str) -> "ServiceConfig":
        """Create configuration from environment variables."""
        return cls(service_name=service_name)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "service_name": self.service_name,
            "environment": self.environment,
            "database": {
                "postgres_dsn": self.database.postgres_dsn,
                "postgres_min_size": self.database.postgres_min_size,
                "postgres_max_size": self.database.postgres_max_size,
                "postgres_timeout": self.database.postgres_timeout,
            },
            "observability": {
                "log_level": self.observability.log_level,
                "log_format": self.observability.log_format,
                "health_port": self.observability.health_port,
            },
        }
