"""
Ledger client interface.

The registry contract is read through an injected client; this module only
defines the shape the syncer relies on and how a deployment plugs one in.
"""

from __future__ import annotations

import importlib
from typing import Any, Callable, List, Protocol, runtime_checkable

from shared.utils.errors import ConfigurationError

from ..models import OrganizationRecord, ServiceRecord


@runtime_checkable
class LedgerClient(Protocol):
    """Read access to the on-chain registry. Failures raise."""

    async def list_organization_ids(self) -> List[bytes]:
        ...

    async def get_organization(self, org_id: bytes) -> OrganizationRecord:
        ...

    async def get_service(self, org_id: bytes, service_id: bytes) -> ServiceRecord:
        ...


def load_ledger_factory(path: str) -> Callable[[Any], LedgerClient]:
    """Resolve ``package.module:callable`` into a ledger client factory."""
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigurationError(
            "Ledger factory must look like 'package.module:callable'",
            config_key="ledger_factory",
            config_value=path,
        )

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(
            f"Cannot import ledger factory module: {e}",
            config_key="ledger_factory",
            config_value=path,
        ) from e

    factory = getattr(module, attr, None)
    if not callable(factory):
        raise ConfigurationError(
            "Ledger factory is not callable",
            config_key="ledger_factory",
            config_value=path,
        )
    return factory
