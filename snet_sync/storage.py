"""
Relational persistence for synced organizations and services.

Rows are created, never updated; tables come from
``migrations/postgres/001_snet_registry.sql``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Protocol

import structlog

from shared.storage.postgres import PostgresClient
from shared.utils.errors import StorageError

from .models import OrganizationGroup, OrganizationMetadata, ServiceMetadata


logger = structlog.get_logger(__name__)

ORG_TABLE = "snet_org"
ORG_GROUP_TABLE = "snet_org_group"
SERVICE_TABLE = "snet_service"


class RegistryStore(Protocol):
    """Persistence for synced entities. Failures raise."""

    async def create_organization(self, org: OrganizationMetadata) -> int:
        ...

    async def create_organization_groups(self, org_id: int, groups: List[OrganizationGroup]) -> None:
        ...

    async def create_service(self, service: ServiceMetadata) -> int:
        ...


def _insert_returning_id(table: str, row: Dict[str, Any]) -> str:
    columns = list(row)
    placeholders = ", ".join(f"${i + 1}" for i in range(len(columns)))
    return f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders}) RETURNING id"


class PostgresRegistryStore:
    """``RegistryStore`` backed by the shared PostgreSQL client."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    async def create_organization(self, org: OrganizationMetadata) -> int:
        return await self._create(ORG_TABLE, org.to_row())

    async def create_organization_groups(self, org_id: int, groups: List[OrganizationGroup]) -> None:
        rows = [group.to_row(org_id) for group in groups]
        await self.postgres.insert_many(ORG_GROUP_TABLE, rows)

    async def create_service(self, service: ServiceMetadata) -> int:
        return await self._create(SERVICE_TABLE, service.to_row())

    async def _create(self, table: str, row: Dict[str, Any]) -> int:
        new_id = await self.postgres.execute_scalar(_insert_returning_id(table, row), *row.values())
        if new_id is None:
            raise StorageError("Insert returned no id", operation="insert", table=table)
        logger.debug("Row created", table=table, id=new_id)
        return int(new_id)
