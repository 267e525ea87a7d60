"""PostgreSQL adapter implementing the ProbeClient interface with asyncpg."""

import asyncio
from typing import Any

import asyncpg

from pgprecheck.adapters.postgres_queries import LIST_DATABASES, PROBE_QUERIES
from pgprecheck.core.exceptions import ProbeError
from pgprecheck.interfaces.probe_client import ProbeClient, ProbeId, Row
from pgprecheck.utils.logging import get_logger
from pgprecheck.utils.retry import retry_on_exception

logger = get_logger(__name__)

_QUERY_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)

# Errors worth another connection attempt; authentication failures are not.
TRANSIENT_CONNECT_ERRORS: tuple[type[Exception], ...] = (
    OSError,
    asyncio.TimeoutError,
    asyncpg.CannotConnectNowError,
    asyncpg.TooManyConnectionsError,
)


class PostgresAdapter(ProbeClient):
    """Adapter running fixed probe queries through per-database asyncpg pools.

    Pools are created lazily on first use of a database and closed together
    by close(). Every query carries a short timeout so one unresponsive
    database cannot stall a whole run.
    """

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        maintenance_database: str = "postgres",
        ssl: str = "require",
        connect_timeout: float = 10.0,
        probe_timeout: float = 30.0,
        connect_retries: int = 3,
        max_pool_size: int = 4,
    ):
        """Initialize PostgreSQL adapter.

        Args:
            host: Database endpoint
            port: Database port
            user: Database user
            password: Database password (never logged)
            maintenance_database: Database used for cluster-wide probes
            ssl: SSL mode passed to asyncpg
            connect_timeout: Connection timeout in seconds
            probe_timeout: Per-query timeout in seconds
            connect_retries: Attempts for transient connection failures
            max_pool_size: Maximum connections held per database
        """
        self.host = host
        self.port = port
        self.user = user
        self._password = password
        self.maintenance_database = maintenance_database
        self.ssl = ssl
        self.connect_timeout = connect_timeout
        self.probe_timeout = probe_timeout
        self.connect_retries = connect_retries
        self.max_pool_size = max_pool_size
        self._pools: dict[str, asyncpg.Pool] = {}
        self._pool_locks: dict[str, asyncio.Lock] = {}
        self._pool_errors: dict[str, str] = {}
        logger.debug("postgres_adapter_initialized", host=host, port=port, user=user)

    async def _create_pool(self, database: str) -> asyncpg.Pool:
        @retry_on_exception(
            exceptions=TRANSIENT_CONNECT_ERRORS,
            max_attempts=self.connect_retries,
            min_wait=1,
            max_wait=5,
            max_delay=self.connect_timeout * self.connect_retries,
            operation=f"connect:{database}",
        )
        async def _connect() -> asyncpg.Pool:
            return await asyncpg.create_pool(
                host=self.host,
                port=self.port,
                user=self.user,
                password=self._password,
                database=database,
                ssl=self.ssl,
                timeout=self.connect_timeout,
                command_timeout=self.probe_timeout,
                min_size=1,
                max_size=self.max_pool_size,
            )

        return await _connect()

    async def _get_pool(self, database: str) -> asyncpg.Pool:
        # A database that failed to connect once is not retried for the rest of the run.
        async with self._pool_locks.setdefault(database, asyncio.Lock()):
            if database in self._pool_errors:
                raise ProbeError(self._pool_errors[database], database=database)
            pool = self._pools.get(database)
            if pool is None:
                logger.debug("creating_pool", database=database)
                try:
                    pool = await self._create_pool(database)
                except Exception as e:
                    logger.error("pool_creation_failed", database=database, error=str(e))
                    message = f"Unable to connect to database '{database}': {e}"
                    self._pool_errors[database] = message
                    raise ProbeError(message, database=database) from e
                self._pools[database] = pool
            return pool

    def _query_for(self, probe_id: ProbeId) -> str:
        try:
            return PROBE_QUERIES[probe_id]
        except KeyError as e:
            raise ProbeError(f"Unknown probe: {probe_id}") from e

    async def scalar_query(self, database: str, probe_id: ProbeId, *args: Any) -> str | None:
        """Run a probe returning a single value.

        Args:
            database: Database to run the probe in
            probe_id: Probe to execute
            *args: Bind parameters for the probe

        Returns:
            First column of the first row as text, or None

        Raises:
            ProbeError: If the probe cannot be executed
        """
        query = self._query_for(probe_id)
        pool = await self._get_pool(database)
        try:
            async with pool.acquire() as conn:
                value = await conn.fetchval(query, *args, timeout=self.probe_timeout)
        except _QUERY_ERRORS as e:
            logger.warning(
                "scalar_probe_failed", database=database, probe=probe_id.value, error=str(e)
            )
            raise ProbeError(f"Probe {probe_id.value} failed: {e}", database=database) from e

        return None if value is None else str(value)

    async def rows_query(self, database: str, probe_id: ProbeId, *args: Any) -> list[Row]:
        """Run a probe returning rows.

        Args:
            database: Database to run the probe in
            probe_id: Probe to execute
            *args: Bind parameters for the probe

        Returns:
            List of rows as dicts

        Raises:
            ProbeError: If the probe cannot be executed
        """
        query = self._query_for(probe_id)
        pool = await self._get_pool(database)
        try:
            async with pool.acquire() as conn:
                records = await conn.fetch(query, *args, timeout=self.probe_timeout)
        except _QUERY_ERRORS as e:
            logger.warning(
                "rows_probe_failed", database=database, probe=probe_id.value, error=str(e)
            )
            raise ProbeError(f"Probe {probe_id.value} failed: {e}", database=database) from e

        return [dict(record) for record in records]

    async def list_databases(self) -> list[str]:
        """List non-template database names.

        Raises:
            ProbeError: If the cluster cannot be reached
        """
        pool = await self._get_pool(self.maintenance_database)
        try:
            async with pool.acquire() as conn:
                records = await conn.fetch(LIST_DATABASES, timeout=self.probe_timeout)
        except _QUERY_ERRORS as e:
            logger.error("list_databases_failed", error=str(e))
            raise ProbeError(f"Failed to list databases: {e}") from e

        return [record["datname"] for record in records]

    async def show_setting(self, name: str) -> str:
        """Read a server configuration parameter.

        The name is passed as a bind parameter to current_setting().

        Args:
            name: Parameter name

        Returns:
            Current value

        Raises:
            ProbeError: If the setting cannot be read
        """
        pool = await self._get_pool(self.maintenance_database)
        try:
            async with pool.acquire() as conn:
                value = await conn.fetchval(
                    "SELECT pg_catalog.current_setting($1)", name, timeout=self.probe_timeout
                )
        except _QUERY_ERRORS as e:
            logger.warning("show_setting_failed", setting=name, error=str(e))
            raise ProbeError(f"Failed to read setting {name}: {e}") from e

        return str(value)

    async def close(self) -> None:
        """Close all pools."""
        pools = list(self._pools.items())
        self._pools.clear()
        self._pool_errors.clear()

        for database, pool in pools:
            try:
                await pool.close()
            except Exception as e:
                logger.warning("pool_close_failed", database=database, error=str(e))

        logger.debug("postgres_adapter_closed", pools=len(pools))
