"""
PostgreSQL async client wrapper for registry storage.

Provides high-level interface for PostgreSQL operations
with connection pooling and error handling.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Union
from dataclasses import dataclass
import structlog

import asyncpg

from shared.utils.errors import StorageError


logger = structlog.get_logger(__name__)


@dataclass
class PostgresConfig:
    """PostgreSQL configuration."""
    dsn: str
    min_size: int = 1
    max_size: int = 5
    timeout: int = 30


class PostgresClient:
    """
    Async PostgreSQL client with connection pooling.

    Every statement acquires a pooled connection for its own duration.
    Driver errors are logged and re-raised as ``StorageError``.
    """

    def __init__(self, config: Union[PostgresConfig, str]):
        if isinstance(config, PostgresConfig):
            self.config = config
        else:
            self.config = PostgresConfig(dsn=config)

        self._pool: Optional[asyncpg.Pool] = None
        self.is_connected: bool = False

    async def connect(self) -> None:
        """Connect to PostgreSQL."""
        if self._pool:
            self.is_connected = True
            return

        self._pool = await asyncpg.create_pool(
            self.config.dsn,
            min_size=self.config.min_size,
            max_size=self.config.max_size,
            command_timeout=self.config.timeout
        )

        self.is_connected = True
        logger.info("Connected to PostgreSQL")

    async def disconnect(self) -> None:
        """Disconnect from PostgreSQL."""
        if self._pool:
            await self._pool.close()
            self._pool = None

        self.is_connected = False
        logger.info("Disconnected from PostgreSQL")

    async def close(self) -> None:
        """Alias for disconnect to mirror other storage clients."""
        await self.disconnect()

    @asynccontextmanager
    async def _connection(self, operation: str) -> AsyncIterator[asyncpg.Connection]:
        if not self._pool:
            await self.connect()

        async with self._pool.acquire() as conn:
            try:
                yield conn
            except asyncpg.PostgresError as e:
                logger.error("PostgreSQL error", operation=operation, error=str(e))
                raise StorageError(str(e), operation=operation) from e

    async def execute(self, query: str, *args: Any) -> List[Dict[str, Any]]:
        """Execute a SELECT query and return list of rows."""
        async with self._connection("fetch") as conn:
            rows = await conn.fetch(query, *args)
            return [dict(row) for row in rows]

    async def execute_scalar(self, query: str, *args: Any) -> Any:
        """Execute a query returning a scalar value (e.g. ``RETURNING id``)."""
        async with self._connection("fetchval") as conn:
            return await conn.fetchval(query, *args)

    async def execute_script(self, sql: str) -> None:
        """Run one or more statements without parameters (migrations, DDL)."""
        async with self._connection("script") as conn:
            await conn.execute(sql)

    async def insert_many(self, table: str, data: List[Dict[str, Any]]) -> None:
        """Insert multiple records in a single batch."""
        if not data:
            return

        columns = list(data[0].keys())
        values_list: List[Sequence[Any]] = [[record[col] for col in columns] for record in data]
        placeholders = ", ".join(f"${i + 1}" for i in range(len(columns)))
        insert_sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"

        async with self._connection("insert_many") as conn:
            await conn.executemany(insert_sql, values_list)

        logger.debug("Records inserted", table=table, count=len(data))

    async def health_check(self) -> bool:
        """Check PostgreSQL health."""
        try:
            result = await self.execute_scalar("SELECT 1")
            return result == 1
        except Exception as e:
            logger.error("PostgreSQL health check failed", error=str(e))
            return False

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()
