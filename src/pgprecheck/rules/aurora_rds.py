"""Aurora/RDS precheck rules (pg_upgrade_precheck.log)."""

from pgprecheck.core.models import Scope, Section, Severity
from pgprecheck.interfaces.probe_client import ProbeId
from pgprecheck.rules.predicates import ALWAYS, source_below, target_at_least
from pgprecheck.rules.probes import count_equals, count_positive, rows_present
from pgprecheck.rules.rule import Rule

MULTI_VERSION_EXTENSIONS = (
    "postgis",
    "pgrouting",
    "postgis_raster",
    "postgis_tiger_geocoder",
    "postgis_topology",
    "address_standardizer",
    "address_standardizer_data_us",
    "rdkit",
)

_DROP_UNSUPPORTED_EXTENSION = (
    "This extension is not supported in the target version. "
    "Please drop the extension and try again."
)

AURORA_RDS_RULES: tuple[Rule, ...] = (
    Rule(
        id="A-1",
        title="check_for_prepared_transactions",
        section=Section.PRECHECK_AURORA_RDS,
        scope=Scope.CLUSTER,
        applicability=ALWAYS,
        default_severity=Severity.ERROR,
        probe=count_positive(
            ProbeId.PREPARED_XACT_COUNT,
            "{count} uncommitted prepared transaction(s) exist",
            detail_probe=ProbeId.PREPARED_XACTS,
        ),
        remediation="Please commit or rollback all prepared transactions and try again.",
    ),
    Rule(
        id="A-2",
        title="check_database_not_allow_connect",
        section=Section.PRECHECK_AURORA_RDS,
        scope=Scope.CLUSTER,
        applicability=ALWAYS,
        default_severity=Severity.ERROR,
        probe=rows_present(
            ProbeId.DATABASES_NOT_ALLOWING_CONNECTIONS,
            "Database connection settings error: {count} database(s) do not allow connections",
        ),
        remediation=(
            "Please ensure all non-template0 databases allow connections and try again."
        ),
    ),
    Rule(
        id="A-3",
        title="check_template_0_and_template1",
        section=Section.PRECHECK_AURORA_RDS,
        scope=Scope.CLUSTER,
        applicability=ALWAYS,
        default_severity=Severity.ERROR,
        probe=count_equals(
            ProbeId.TEMPLATE_DATABASE_COUNT,
            2,
            "template0 and template1 are invalid ({count} of {expected} marked as templates)",
        ),
        remediation=(
            "Make sure that template1 and template0 exist and have datistemplate set to 't'."
        ),
    ),
    Rule(
        id="A-4",
        title="check_for_invalid_database",
        section=Section.PRECHECK_AURORA_RDS,
        scope=Scope.CLUSTER,
        applicability=ALWAYS,
        default_severity=Severity.ERROR,
        probe=rows_present(
            ProbeId.INVALID_DATABASES,
            "Invalid database(s) found (datconnlimit = -2)",
        ),
        remediation=(
            "To identify invalid databases, run 'SELECT datname FROM pg_catalog.pg_database "
            "WHERE datconnlimit = -2;', remove them with 'DROP DATABASE', and try again."
        ),
    ),
    Rule(
        id="A-5",
        title="check_for_replication_slots",
        section=Section.PRECHECK_AURORA_RDS,
        scope=Scope.CLUSTER,
        applicability=source_below(17, reason="APG 17+ supports logical slot migration"),
        default_severity=Severity.ERROR,
        probe=count_positive(
            ProbeId.REPLICATION_SLOT_COUNT,
            "{count} replication slot(s) exist - must be dropped before upgrade",
            detail_probe=ProbeId.LOGICAL_REPLICATION_SLOTS,
        ),
        remediation="Please drop all logical replication slots and try again.",
    ),
    Rule(
        id="A-6",
        title="check_chkpass_extension",
        section=Section.PRECHECK_AURORA_RDS,
        scope=Scope.PER_DATABASE,
        applicability=target_at_least(11),
        default_severity=Severity.ERROR,
        probe=rows_present(
            ProbeId.INSTALLED_EXTENSION,
            "chkpass extension installed - not supported in PG >= 11",
            "chkpass",
        ),
        remediation=_DROP_UNSUPPORTED_EXTENSION,
    ),
    Rule(
        id="A-7",
        title="check_tsearch2_extension",
        section=Section.PRECHECK_AURORA_RDS,
        scope=Scope.PER_DATABASE,
        applicability=target_at_least(11),
        default_severity=Severity.ERROR,
        probe=rows_present(
            ProbeId.INSTALLED_EXTENSION,
            "tsearch2 extension installed - not supported in PG >= 11",
            "tsearch2",
        ),
        remediation=_DROP_UNSUPPORTED_EXTENSION,
    ),
    Rule(
        id="A-8",
        title="check_pg_repack_extension",
        section=Section.PRECHECK_AURORA_RDS,
        scope=Scope.PER_DATABASE,
        applicability=target_at_least(14),
        default_severity=Severity.ERROR,
        probe=rows_present(
            ProbeId.INSTALLED_EXTENSION,
            "pg_repack {extversion} installed - must be dropped before upgrade to PG >= 14",
            "pg_repack",
        ),
        remediation="Drop the extension and try again.",
    ),
    Rule(
        id="A-9",
        title="check_for_multi_extensions_version",
        section=Section.PRECHECK_AURORA_RDS,
        scope=Scope.PER_DATABASE_PER_TARGET,
        applicability=ALWAYS,
        default_severity=Severity.WARNING,
        probe=rows_present(
            ProbeId.OUTDATED_EXTENSION_VERSION,
            "{name} installed: {installed_version}, available: {default_version}",
            target_param="{target}",
        ),
        remediation=(
            "You can either drop the extension or upgrade the extension "
            "and try the upgrade again."
        ),
        targets=MULTI_VERSION_EXTENSIONS,
    ),
)
