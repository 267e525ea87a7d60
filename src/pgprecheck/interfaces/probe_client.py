"""Probe client interface for read-only catalog inspection."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

Row = dict[str, Any]


class ProbeId(str, Enum):
    """Identifiers of the fixed, read-only probe queries.

    Probe text is owned by the adapter; the engine only refers to probes by
    id and passes pre-validated identifiers as bind parameters.
    """

    PREPARED_XACT_COUNT = "prepared_xact_count"
    PREPARED_XACTS = "prepared_xacts"
    DATABASES_NOT_ALLOWING_CONNECTIONS = "databases_not_allowing_connections"
    TEMPLATE_DATABASE_COUNT = "template_database_count"
    INVALID_DATABASES = "invalid_databases"
    REPLICATION_SLOT_COUNT = "replication_slot_count"
    LOGICAL_REPLICATION_SLOTS = "logical_replication_slots"
    INSTALLED_EXTENSION = "installed_extension"
    OUTDATED_EXTENSION_VERSION = "outdated_extension_version"
    SYSTEM_COMPOSITE_TYPE_COLUMNS = "system_composite_type_columns"
    REG_TYPE_COLUMNS = "reg_type_columns"
    TYPE_USAGE_COLUMNS = "type_usage_columns"
    USER_ENCODING_CONVERSIONS = "user_encoding_conversions"
    USER_POSTFIX_OPERATORS = "user_postfix_operators"
    INCOMPATIBLE_POLYMORPHICS = "incompatible_polymorphics"
    TABLES_WITH_OIDS = "tables_with_oids"
    SUBSCRIPTION_COUNT = "subscription_count"
    SUBSCRIPTIONS = "subscriptions"
    TABLES_WITHOUT_PK_COUNT = "tables_without_pk_count"
    TABLES_WITHOUT_PK = "tables_without_pk"
    DDL_EVENT_TRIGGER_COUNT = "ddl_event_trigger_count"
    DDL_EVENT_TRIGGERS = "ddl_event_triggers"
    CAPTURE_TRIGGER = "capture_trigger"


class ProbeClient(ABC):
    """Abstract interface for read-only probes against a database cluster.

    Implementations execute fixed probe templates identified by ProbeId.
    All methods raise ProbeError on connectivity, timeout or execution
    failures so callers can distinguish "could not verify" from "clean".
    """

    @abstractmethod
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

    @abstractmethod
    async def rows_query(self, database: str, probe_id: ProbeId, *args: Any) -> list[Row]:
        """Run a probe returning rows.

        Args:
            database: Database to run the probe in
            probe_id: Probe to execute
            *args: Bind parameters for the probe

        Returns:
            List of rows as dicts (empty if nothing matched)

        Raises:
            ProbeError: If the probe cannot be executed
        """

    @abstractmethod
    async def list_databases(self) -> list[str]:
        """List non-template database names in the cluster.

        Raises:
            ProbeError: If the cluster cannot be reached
        """

    @abstractmethod
    async def show_setting(self, name: str) -> str:
        """Read a server configuration parameter.

        Args:
            name: Parameter name (e.g. max_replication_slots)

        Returns:
            Current value as reported by SHOW

        Raises:
            ProbeError: If the setting cannot be read
        """

    async def close(self) -> None:
        """Release any held connections."""
