"""
Registry sync orchestration.

One pass walks every organization registered on the ledger, resolves its
metadata from IPFS, persists organizations, groups and services, and
compiles each service's schema bundle into the schema registry. Failures
are logged per entity and never escape the pass.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Set

import structlog

from shared.framework.metrics import MetricsCollector
from shared.utils.logging import bind_organization, bind_service

from .bundle import extract_bundle
from .clients.ipfs import ContentStore
from .clients.ledger import LedgerClient
from .compiler import SchemaCompiler
from .config import SyncConfig
from .decoder import decode_organization_metadata, decode_service_metadata
from .models import OrganizationMetadata, OrganizationRecord, ServiceMetadata, derive_identity
from .registry import SchemaRegistry
from .storage import RegistryStore


logger = structlog.get_logger(__name__)


class _AbortPass(Exception):
    """Stops the remainder of a pass (service metadata policy)."""


@dataclass
class SyncPassStats:
    """Outcome counters for one pass."""
    organizations_seen: int = 0
    organizations_synced: int = 0
    organizations_skipped: int = 0
    services_synced: int = 0
    services_skipped: int = 0
    descriptors_added: int = 0
    compile_failures: int = 0
    aborted: bool = False
    started_at: float = 0.0
    finished_at: float = 0.0

    @property
    def duration(self) -> float:
        return max(self.finished_at - self.started_at, 0.0)

    def to_dict(self) -> Dict[str, Any]:
        return {**asdict(self), "duration": self.duration}


class SnetSyncer:
    """Mirrors the on-chain registry into the local store and schema registry."""

    def __init__(
        self,
        config: SyncConfig,
        ledger: LedgerClient,
        content: ContentStore,
        store: RegistryStore,
        registry: SchemaRegistry,
        compiler: Optional[SchemaCompiler] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.config = config
        self.ledger = ledger
        self.content = content
        self.store = store
        self.registry = registry
        self.compiler = compiler or SchemaCompiler(config.include_well_known_types)
        self.metrics = metrics
        self.last_stats: Optional[SyncPassStats] = None
        # Identities already cleared in the running pass
        self._cleared: Set[str] = set()

    async def run_sync_pass(self) -> SyncPassStats:
        """Run one full pass. Never raises; the returned stats are informational."""
        stats = SyncPassStats(started_at=time.time())
        self._cleared = set()
        logger.info("SnetSyncer now working...")

        try:
            org_ids = await self.ledger.list_organization_ids()
        except Exception as e:
            logger.warning("Failed to list organizations", error=str(e))
            self._record_error(e, "ledger")
            org_ids = []

        try:
            for org_id in org_ids:
                stats.organizations_seen += 1
                await self._sync_organization(org_id, stats)
        except _AbortPass:
            stats.aborted = True
            logger.error("Sync pass aborted", organizations_seen=stats.organizations_seen)

        stats.finished_at = time.time()
        self.last_stats = stats
        self._record_pass(stats)
        logger.info("Sync pass finished", **stats.to_dict())
        return stats

    async def _sync_organization(self, org_id: bytes, stats: SyncPassStats) -> None:
        log = bind_organization(logger, derive_identity(org_id))

        try:
            record = await self.ledger.get_organization(org_id)
        except Exception as e:
            log.error("Failed to get org", error=str(e))
            self._record_error(e, "ledger")
            self._skip_org(stats)
            return

        try:
            raw = await self.content.get_file(record.metadata_uri)
        except Exception as e:
            log.error("Failed to get ipfs file", error=str(e))
            self._record_error(e, "content")
            self._skip_org(stats)
            return

        try:
            org = decode_organization_metadata(raw)
        except Exception as e:
            log.error("Can't unmarshal org metadata from ipfs", error=str(e), content=_as_text(raw))
            self._record_error(e, "decoder")
            self._skip_org(stats)
            return

        org.owner = record.owner
        org.snet_id = record.snet_id
        org.id = await self._persist_organization(org, log)

        stats.organizations_synced += 1
        self._record_entity("organization", "synced")

        for service_id in record.service_ids:
            await self._sync_service(record, org, service_id, stats)

    async def _persist_organization(self, org: OrganizationMetadata, log) -> int:
        org_id = 0
        try:
            org_id = await self.store.create_organization(org)
        except Exception as e:
            log.error("Failed to create org", error=str(e))
            self._record_error(e, "storage")

        try:
            await self.store.create_organization_groups(org_id, org.groups)
        except Exception as e:
            log.error("Failed to create org group", org_id=org_id, error=str(e))
            self._record_error(e, "storage")
        return org_id

    async def _sync_service(
        self,
        record: OrganizationRecord,
        org: OrganizationMetadata,
        service_id: bytes,
        stats: SyncPassStats,
    ) -> None:
        snet_id = derive_identity(service_id)
        log = bind_service(bind_organization(logger, org.snet_id), snet_id)

        try:
            service_record = await self.ledger.get_service(record.id, service_id)
        except Exception as e:
            log.error("Failed to get service", error=str(e))
            self._record_error(e, "ledger")
            self._skip_service(stats)
            return

        meta = await self._load_service_metadata(service_record.metadata_uri, log)
        if meta is None:
            self._skip_service(stats)
            if self.config.abort_pass_on_service_metadata_error:
                raise _AbortPass()
            return

        log.debug("Metadata of service", display_name=meta.display_name, bundle=meta.bundle_locator)

        meta.org_id = org.id
        meta.snet_org_id = org.snet_id
        meta.snet_id = snet_id
        try:
            meta.id = await self.store.create_service(meta)
        except Exception as e:
            log.error("Failed to add snet_service", id=meta.id, error=str(e))
            self._record_error(e, "storage")

        stats.services_synced += 1
        self._record_entity("service", "synced")

        files = await self._load_bundle(meta, log)
        if files:
            await self._compile_bundle(snet_id, files, stats, log)

    async def _load_service_metadata(self, metadata_uri, log) -> Optional[ServiceMetadata]:
        try:
            raw = await self.content.get_file(metadata_uri)
        except Exception as e:
            log.error("Failed to get file from ipfs", error=str(e))
            self._record_error(e, "content")
            return None

        try:
            return decode_service_metadata(raw)
        except Exception as e:
            log.error("Failed to unmarshal metadata from ipfs", error=str(e), content=_as_text(raw))
            self._record_error(e, "decoder")
            return None

    async def _load_bundle(self, meta: ServiceMetadata, log) -> Dict[str, bytes]:
        if not meta.bundle_locator:
            log.warning("Service metadata has no schema bundle")
            return {}

        try:
            content = await self.content.get_file(meta.bundle_locator)
        except Exception as e:
            log.error("Failed to get schema bundle", locator=meta.bundle_locator, error=str(e))
            self._record_error(e, "content")
            return {}

        try:
            return extract_bundle(content)
        except Exception as e:
            log.error("Failed to extract schema bundle", locator=meta.bundle_locator, error=str(e))
            self._record_error(e, "bundle")
            return {}

    async def _compile_bundle(self, snet_id: str, files: Dict[str, bytes], stats: SyncPassStats, log) -> None:
        # Service ids are unique per org only, so several orgs may share an
        # identity; entries from earlier passes go, ones from this pass stay
        if self.config.replace_descriptors_on_resync and snet_id not in self._cleared:
            self.registry.clear(snet_id)
        self._cleared.add(snet_id)

        loop = asyncio.get_running_loop()
        for file_name in files:
            descriptor = await loop.run_in_executor(None, self.compiler.compile, file_name, files)
            self.registry.accumulate(snet_id, descriptor)
            if descriptor is None:
                stats.compile_failures += 1
                if self.metrics:
                    self.metrics.record_compile_failure()
                log.error("Failed to compile schema file", file=file_name)
            else:
                stats.descriptors_added += 1

    def _skip_org(self, stats: SyncPassStats) -> None:
        stats.organizations_skipped += 1
        self._record_entity("organization", "skipped")

    def _skip_service(self, stats: SyncPassStats) -> None:
        stats.services_skipped += 1
        self._record_entity("service", "skipped")

    def _record_entity(self, entity: str, status: str) -> None:
        if self.metrics:
            self.metrics.record_entity(entity, status)

    def _record_error(self, error: Exception, component: str) -> None:
        if self.metrics:
            self.metrics.record_error(getattr(error, "error_code", type(error).__name__), component)

    def _record_pass(self, stats: SyncPassStats) -> None:
        if not self.metrics:
            return
        self.metrics.record_sync_pass("aborted" if stats.aborted else "completed", stats.duration, stats.finished_at)
        self.metrics.set_registry_size(self.registry.descriptor_count())


def _as_text(raw: Any) -> str:
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw).decode("utf-8", errors="replace")
    return str(raw)
