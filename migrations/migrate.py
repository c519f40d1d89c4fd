#!/usr/bin/env python3
"""
Database migration runner for the registry sync service.

Applies the ordered ``*.sql`` files of a migration directory
to PostgreSQL and reports which registry tables exist.
"""

import argparse
import asyncio
import os
from pathlib import Path
from typing import Any, Dict, List

import structlog

from shared.storage.postgres import PostgresClient, PostgresConfig
from shared.utils.logging import setup_logging


logger = structlog.get_logger(__name__)

DEFAULT_MIGRATION_DIR = Path(__file__).parent / "postgres"


class MigrationRunner:
    """PostgreSQL migration runner."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    @staticmethod
    def migration_files(migration_dir: Path) -> List[Path]:
        return sorted(migration_dir.glob("*.sql"))

    async def run_migrations(self, migration_dir: Path) -> int:
        """Apply every migration in ``migration_dir``; return how many ran."""
        if not migration_dir.exists():
            logger.error("Migration directory not found", path=str(migration_dir))
            return 0

        files = self.migration_files(migration_dir)
        if not files:
            logger.warning("No migration files found", path=str(migration_dir))
            return 0

        logger.info("Starting migrations", count=len(files))
        for migration_file in files:
            await self._run_migration(migration_file)

        logger.info("All migrations completed successfully")
        return len(files)

    async def _run_migration(self, migration_file: Path) -> None:
        logger.info("Running migration", file=migration_file.name)
        try:
            await self.postgres.execute_script(migration_file.read_text())
        except Exception as e:
            logger.error("Migration failed", file=migration_file.name, error=str(e), exc_info=True)
            raise
        logger.info("Migration completed", file=migration_file.name)

    async def check_status(self) -> Dict[str, Any]:
        """Report connectivity and the registry tables present."""
        status: Dict[str, Any] = {"connected": False, "tables": []}
        try:
            tables = await self.postgres.execute(
                "SELECT table_name FROM information_schema.tables "
                "WHERE table_schema = 'public' AND table_name LIKE 'snet_%'"
            )
            status["connected"] = True
            status["tables"] = sorted(table["table_name"] for table in tables)
        except Exception as e:
            logger.error("PostgreSQL status check failed", error=str(e))
        return status


async def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Registry sync migration runner")
    parser.add_argument("--migration-dir", type=Path, default=DEFAULT_MIGRATION_DIR, help="Migration directory")
    parser.add_argument("--dsn", default=os.getenv("SNET_SYNC_POSTGRES_DSN", "postgresql://localhost:5432/snet_registry"))
    parser.add_argument("--status", action="store_true", help="Check migration status")
    args = parser.parse_args()

    setup_logging("snet-sync-migrate", format_type="console")

    async with PostgresClient(PostgresConfig(dsn=args.dsn, min_size=1, max_size=2)) as postgres:
        runner = MigrationRunner(postgres)
        if args.status:
            status = await runner.check_status()
            print(f"PostgreSQL: {'Connected' if status['connected'] else 'Disconnected'}")
            print(f"Tables: {', '.join(status['tables']) or '-'}")
            return

        await runner.run_migrations(args.migration_dir)


if __name__ == "__main__":
    asyncio.run(main())
