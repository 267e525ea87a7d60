"""Pytest configuration and shared fixtures."""

from typing import Any

import pytest

from pgprecheck.core.exceptions import ProbeError
from pgprecheck.interfaces.probe_client import ProbeClient, ProbeId, Row
from pgprecheck.rules.rule import ProbeContext

DEFAULT_SETTINGS = {
    "server_version_num": "130012",
    "max_replication_slots": "20",
    "max_wal_senders": "20",
    "max_logical_replication_workers": "10",
    "max_worker_processes": "20",
    "rds.logical_replication": "on",
}


class FakeProbeClient(ProbeClient):
    """In-memory probe client describing a clean cluster unless told otherwise.

    Scalars and rows are keyed by tuples and looked up most specific first:
    (database, probe, *args), then (database, probe), then (probe,).
    """

    def __init__(
        self,
        databases: list[str] | None = None,
        scalars: dict[tuple, str | None] | None = None,
        rows: dict[tuple, list[Row]] | None = None,
        settings: dict[str, str] | None = None,
        failures: set[tuple] | None = None,
    ):
        self.databases = ["appdb"] if databases is None else databases
        self.scalars: dict[tuple, str | None] = {(ProbeId.TEMPLATE_DATABASE_COUNT,): "2"}
        self.scalars.update(scalars or {})
        self.rows = rows or {}
        self.settings = {**DEFAULT_SETTINGS, **(settings or {})}
        self.failures = failures or set()
        self.calls: list[tuple] = []
        self.closed = False

    def _lookup(self, table: dict[tuple, Any], database: str, probe_id: ProbeId, args: tuple):
        for key in ((database, probe_id, *args), (database, probe_id), (probe_id,)):
            if key in self.failures:
                raise ProbeError(f"permission denied for {probe_id.value}", database=database)
            if key in table:
                return table[key]
        return None

    async def scalar_query(self, database: str, probe_id: ProbeId, *args: Any) -> str | None:
        self.calls.append((database, probe_id, *args))
        value = self._lookup(self.scalars, database, probe_id, args)
        return "0" if value is None else value

    async def rows_query(self, database: str, probe_id: ProbeId, *args: Any) -> list[Row]:
        self.calls.append((database, probe_id, *args))
        return list(self._lookup(self.rows, database, probe_id, args) or [])

    async def list_databases(self) -> list[str]:
        if ("list_databases",) in self.failures:
            raise ProbeError("connection refused")
        return list(self.databases)

    async def show_setting(self, name: str) -> str:
        if ("setting", name) in self.failures:
            raise ProbeError(f'unrecognized configuration parameter "{name}"')
        return self.settings[name]

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_client() -> FakeProbeClient:
    """Provide a probe client for a clean single-database cluster."""
    return FakeProbeClient()


@pytest.fixture
def probe_context(fake_client: FakeProbeClient) -> ProbeContext:
    """Provide a probe context over the fake client."""
    return ProbeContext(client=fake_client, database_count=len(fake_client.databases))
