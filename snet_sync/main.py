"""Main entry point for the registry sync service."""

import asyncio
import time
from typing import Optional

import structlog
from aiohttp import web

from shared.framework.health import HealthCheck
from shared.framework.service import AsyncService
from shared.storage.postgres import PostgresClient, PostgresConfig
from shared.utils.errors import ConfigurationError
from shared.utils.logging import setup_logging

from .clients.ipfs import ContentStore, IpfsClient
from .clients.ledger import LedgerClient, load_ledger_factory
from .compiler import SchemaCompiler
from .config import SyncConfig
from .registry import SchemaRegistry
from .scheduler import SyncScheduler
from .storage import PostgresRegistryStore, RegistryStore
from .syncer import SnetSyncer


logger = structlog.get_logger(__name__)


class SnetSyncService(AsyncService):
    """Keeps the local registry in sync and serves the schema summary."""

    def __init__(
        self,
        config: Optional[SyncConfig] = None,
        ledger: Optional[LedgerClient] = None,
        content: Optional[ContentStore] = None,
        store: Optional[RegistryStore] = None,
        registry: Optional[SchemaRegistry] = None,
    ):
        config = config or SyncConfig()
        super().__init__(config)
        self.config = config
        self.ledger = ledger
        self.content = content
        self.store = store
        self.registry = registry or SchemaRegistry()
        self.postgres: Optional[PostgresClient] = None
        self.syncer: Optional[SnetSyncer] = None
        self.scheduler: Optional[SyncScheduler] = None

        self.health_checker.add_check(
            HealthCheck(
                name="last_sync",
                check_func=self._check_last_sync,
                critical=False,
                description="A sync pass finished recently",
            )
        )

    def _setup_service_routes(self) -> None:
        self.app.router.add_get("/snet/services", self._services_handler)
        self.app.router.add_get("/snet/services/{snet_id}", self._service_handler)
        self.app.router.add_post("/snet/sync", self._trigger_handler)

    async def _startup_hook(self) -> None:
        setup_logging(
            self.config.service_name,
            self.config.observability.log_level,
            self.config.observability.log_format,
        )
        logger.info("Starting registry sync components")

        if self.ledger is None:
            if not self.config.ledger_factory:
                raise ConfigurationError(
                    "No ledger client configured",
                    config_key="ledger_factory",
                )
            self.ledger = load_ledger_factory(self.config.ledger_factory)(self.config)

        if self.content is None:
            ipfs = IpfsClient(self.config.ipfs_api_url, timeout=self.config.ipfs_timeout)
            await ipfs.start()
            self.content = ipfs

        if self.store is None:
            self.postgres = PostgresClient(
                PostgresConfig(
                    dsn=self.config.database.postgres_dsn,
                    min_size=self.config.database.postgres_min_size,
                    max_size=self.config.database.postgres_max_size,
                    timeout=self.config.database.postgres_timeout,
                )
            )
            await self.postgres.connect()
            self.store = PostgresRegistryStore(self.postgres)
            self.health_checker.add_check(
                HealthCheck(name="postgres", check_func=self.postgres.health_check, description="PostgreSQL reachable")
            )

        self.syncer = SnetSyncer(
            self.config,
            ledger=self.ledger,
            content=self.content,
            store=self.store,
            registry=self.registry,
            compiler=SchemaCompiler(self.config.include_well_known_types),
            metrics=self.metrics,
        )
        self.scheduler = SyncScheduler(self.syncer, self.config.sync_interval_seconds)
        await self.scheduler.start()

    async def _shutdown_hook(self) -> None:
        logger.info("Stopping registry sync components")

        if self.scheduler:
            await self.scheduler.stop()
        if isinstance(self.content, IpfsClient):
            await self.content.stop()
        if self.postgres:
            await self.postgres.close()

    async def _services_handler(self, request: web.Request) -> web.Response:
        return web.Response(text=self.registry.render(), content_type="text/html")

    async def _service_handler(self, request: web.Request) -> web.Response:
        snet_id = request.match_info["snet_id"]
        descriptors = self.registry.describe(snet_id)
        if not descriptors:
            raise web.HTTPNotFound(text=f"Unknown service: {snet_id}")
        return web.json_response({"snet_id": snet_id, "descriptors": descriptors})

    async def _trigger_handler(self, request: web.Request) -> web.Response:
        if self.scheduler is None or not self.scheduler.trigger():
            return web.json_response({"triggered": False}, status=409)
        return web.json_response({"triggered": True}, status=202)

    def _check_last_sync(self) -> bool:
        stats = self.syncer.last_stats if self.syncer else None
        if stats is None:
            # First pass still running
            return self.scheduler is not None and self.scheduler.pass_in_progress
        return time.time() - stats.finished_at <= self.config.stale_after_seconds


async def main():
    """Main entry point."""
    service = SnetSyncService()
    await service.run()


def run():
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
