"""Unit tests for PostgresAdapter."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import asyncpg
import pytest

from pgprecheck.adapters.postgres_adapter import PostgresAdapter
from pgprecheck.adapters.postgres_queries import LIST_DATABASES, PROBE_QUERIES
from pgprecheck.core.exceptions import ProbeError
from pgprecheck.interfaces.probe_client import ProbeId


@pytest.fixture
def mock_conn():
    """Mock asyncpg connection."""
    return AsyncMock()


@pytest.fixture
def mock_pool(mock_conn):
    """Mock asyncpg pool handing out mock_conn."""
    pool = MagicMock()
    pool.acquire.return_value.__aenter__.return_value = mock_conn
    pool.close = AsyncMock()
    return pool


@pytest.fixture
def create_pool(mock_pool):
    """Patch asyncpg.create_pool."""
    with patch(
        "pgprecheck.adapters.postgres_adapter.asyncpg.create_pool",
        new=AsyncMock(return_value=mock_pool),
    ) as mock:
        yield mock


@pytest.fixture
def adapter() -> PostgresAdapter:
    return PostgresAdapter(
        host="db.example.com",
        port=5432,
        user="admin",
        password="s3cret",
        connect_retries=1,
        probe_timeout=5.0,
    )


class TestProbeQueries:
    """Test the probe query table."""

    def test_every_probe_has_a_query(self):
        assert set(PROBE_QUERIES) == set(ProbeId)

    def test_identifiers_are_bound_not_interpolated(self):
        assert "$1" in PROBE_QUERIES[ProbeId.INSTALLED_EXTENSION]
        assert "$1" in PROBE_QUERIES[ProbeId.OUTDATED_EXTENSION_VERSION]
        assert "$1" in PROBE_QUERIES[ProbeId.TYPE_USAGE_COLUMNS]

    def test_list_databases_excludes_templates(self):
        assert "datistemplate" in LIST_DATABASES


class TestPostgresAdapter:
    """Test PostgresAdapter."""

    @pytest.mark.asyncio
    async def test_scalar_query(self, adapter, create_pool, mock_conn):
        mock_conn.fetchval.return_value = 3

        value = await adapter.scalar_query("appdb", ProbeId.PREPARED_XACT_COUNT)

        assert value == "3"
        mock_conn.fetchval.assert_awaited_once_with(
            PROBE_QUERIES[ProbeId.PREPARED_XACT_COUNT], timeout=5.0
        )
        kwargs = create_pool.call_args.kwargs
        assert kwargs["database"] == "appdb"
        assert kwargs["ssl"] == "require"
        assert kwargs["password"] == "s3cret"

    @pytest.mark.asyncio
    async def test_scalar_query_null(self, adapter, create_pool, mock_conn):
        mock_conn.fetchval.return_value = None

        assert await adapter.scalar_query("appdb", ProbeId.PREPARED_XACT_COUNT) is None

    @pytest.mark.asyncio
    async def test_rows_query_passes_bind_parameters(self, adapter, create_pool, mock_conn):
        mock_conn.fetch.return_value = [{"extname": "chkpass", "extversion": "1.0"}]

        rows = await adapter.rows_query("appdb", ProbeId.INSTALLED_EXTENSION, "chkpass")

        assert rows == [{"extname": "chkpass", "extversion": "1.0"}]
        mock_conn.fetch.assert_awaited_once_with(
            PROBE_QUERIES[ProbeId.INSTALLED_EXTENSION], "chkpass", timeout=5.0
        )

    @pytest.mark.asyncio
    async def test_pool_reused_per_database(self, adapter, create_pool, mock_conn):
        mock_conn.fetchval.return_value = 0

        await adapter.scalar_query("appdb", ProbeId.SUBSCRIPTION_COUNT)
        await adapter.scalar_query("appdb", ProbeId.SUBSCRIPTION_COUNT)
        await adapter.scalar_query("sales", ProbeId.SUBSCRIPTION_COUNT)

        assert create_pool.await_count == 2

    @pytest.mark.asyncio
    async def test_query_error_becomes_probe_error(self, adapter, create_pool, mock_conn):
        mock_conn.fetch.side_effect = asyncpg.InsufficientPrivilegeError("permission denied")

        with pytest.raises(ProbeError, match="permission denied") as exc_info:
            await adapter.rows_query("appdb", ProbeId.REG_TYPE_COLUMNS)

        assert exc_info.value.database == "appdb"

    @pytest.mark.asyncio
    async def test_query_timeout_becomes_probe_error(self, adapter, create_pool, mock_conn):
        mock_conn.fetchval.side_effect = asyncio.TimeoutError()

        with pytest.raises(ProbeError):
            await adapter.scalar_query("appdb", ProbeId.PREPARED_XACT_COUNT)

    @pytest.mark.asyncio
    async def test_connect_failure_becomes_probe_error(self, adapter):
        with patch(
            "pgprecheck.adapters.postgres_adapter.asyncpg.create_pool",
            new=AsyncMock(side_effect=OSError("connection refused")),
        ):
            with pytest.raises(ProbeError, match="Unable to connect to database 'appdb'"):
                await adapter.scalar_query("appdb", ProbeId.PREPARED_XACT_COUNT)

    @pytest.mark.asyncio
    async def test_list_databases_uses_maintenance_database(
        self, adapter, create_pool, mock_conn
    ):
        mock_conn.fetch.return_value = [{"datname": "appdb"}, {"datname": "rdsadmin"}]

        assert await adapter.list_databases() == ["appdb", "rdsadmin"]
        assert create_pool.call_args.kwargs["database"] == "postgres"

    @pytest.mark.asyncio
    async def test_show_setting(self, adapter, create_pool, mock_conn):
        mock_conn.fetchval.return_value = "130012"

        assert await adapter.show_setting("server_version_num") == "130012"
        args = mock_conn.fetchval.call_args.args
        assert args[1] == "server_version_num"

    @pytest.mark.asyncio
    async def test_show_setting_unknown_parameter(self, adapter, create_pool, mock_conn):
        mock_conn.fetchval.side_effect = asyncpg.UndefinedObjectError(
            'unrecognized configuration parameter "rds.logical_replication"'
        )

        with pytest.raises(ProbeError, match="rds.logical_replication"):
            await adapter.show_setting("rds.logical_replication")

    @pytest.mark.asyncio
    async def test_close_closes_every_pool(self, adapter, create_pool, mock_pool, mock_conn):
        mock_conn.fetchval.return_value = 0
        await adapter.scalar_query("appdb", ProbeId.SUBSCRIPTION_COUNT)
        await adapter.scalar_query("sales", ProbeId.SUBSCRIPTION_COUNT)

        await adapter.close()

        assert mock_pool.close.await_count == 2

    @pytest.mark.asyncio
    async def test_unreachable_database_connects_once(self, adapter, mock_pool, mock_conn):
        mock_conn.fetchval.return_value = 0

        async def create_pool(**kwargs):
            if kwargs["database"] == "down":
                raise OSError("connection refused")
            return mock_pool

        with patch(
            "pgprecheck.adapters.postgres_adapter.asyncpg.create_pool",
            new=AsyncMock(side_effect=create_pool),
        ) as mock_create:
            for _ in range(5):
                with pytest.raises(ProbeError, match="Unable to connect to database 'down'"):
                    await adapter.scalar_query("down", ProbeId.SUBSCRIPTION_COUNT)
            assert await adapter.scalar_query("appdb", ProbeId.SUBSCRIPTION_COUNT) == "0"

        databases = [call.kwargs["database"] for call in mock_create.call_args_list]
        assert databases.count("down") == 1

    @pytest.mark.asyncio
    async def test_concurrent_units_share_connect_failure(self, adapter):
        with patch(
            "pgprecheck.adapters.postgres_adapter.asyncpg.create_pool",
            new=AsyncMock(side_effect=OSError("connection refused")),
        ) as mock_create:
            results = await asyncio.gather(
                *(adapter.scalar_query("down", ProbeId.PREPARED_XACT_COUNT) for _ in range(8)),
                return_exceptions=True,
            )

        assert all(isinstance(result, ProbeError) for result in results)
        assert mock_create.await_count == 1

    @pytest.mark.asyncio
    async def test_connect_retries_bounded_by_connect_timeout(self, adapter, create_pool):
        with patch("pgprecheck.adapters.postgres_adapter.retry_on_exception") as mock_retry:
            mock_retry.return_value = lambda func: func
            await adapter._create_pool("appdb")

        kwargs = mock_retry.call_args.kwargs
        assert kwargs["max_delay"] == adapter.connect_timeout * adapter.connect_retries
        assert kwargs["operation"] == "connect:appdb"
