"""Configuration for the registry sync service."""

import os

from shared.framework.config import ServiceConfig
from shared.utils.errors import ConfigurationError

# 100 hours; the on-chain registry changes rarely
DEFAULT_SYNC_INTERVAL_SECONDS = 100 * 60 * 60


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class SyncConfig(ServiceConfig):
    """Configuration for the registry sync service."""

    def __init__(self, **overrides) -> None:
        super().__init__(service_name=overrides.pop("service_name", "snet-sync"))

        self.version = os.getenv("SNET_SYNC_VERSION", "0.1.0")

        self.ipfs_api_url = os.getenv("SNET_SYNC_IPFS_API_URL", "http://localhost:5001").rstrip("/")
        self.ipfs_timeout = float(os.getenv("SNET_SYNC_IPFS_TIMEOUT", "30"))

        self.sync_interval_seconds = float(
            os.getenv("SNET_SYNC_INTERVAL_SECONDS", str(DEFAULT_SYNC_INTERVAL_SECONDS))
        )
        # When true, an unreadable service metadata document ends the whole pass
        self.abort_pass_on_service_metadata_error = _env_flag(
            "SNET_SYNC_ABORT_ON_SERVICE_METADATA_ERROR", "false"
        )
        self.replace_descriptors_on_resync = _env_flag("SNET_SYNC_REPLACE_DESCRIPTORS", "true")
        self.include_well_known_types = _env_flag("SNET_SYNC_WELL_KNOWN_TYPES", "false")

        self.ledger_factory = os.getenv("SNET_SYNC_LEDGER_FACTORY", "")
        stale_after = os.getenv("SNET_SYNC_STALE_AFTER_SECONDS")
        self.stale_after_seconds = float(stale_after) if stale_after else None

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise ConfigurationError(f"Unknown setting: {key}", config_key=key, config_value=value)
            setattr(self, key, value)

        if self.sync_interval_seconds <= 0:
            raise ConfigurationError(
                "Sync interval must be positive",
                config_key="sync_interval_seconds",
                config_value=self.sync_interval_seconds,
            )

        if self.stale_after_seconds is None:
            self.stale_after_seconds = 2 * self.sync_interval_seconds
