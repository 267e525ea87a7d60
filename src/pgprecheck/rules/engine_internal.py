"""Engine-internal rules mirroring pg_upgrade's own checks (pg_upgrade_internal.log)."""

from pgprecheck.core.models import Scope, Section, Severity
from pgprecheck.interfaces.probe_client import ProbeId
from pgprecheck.rules.predicates import ALWAYS, all_of, source_at_most, target_at_least
from pgprecheck.rules.probes import rows_present
from pgprecheck.rules.rule import Rule

REMOVED_DATA_TYPES = ("abstime", "reltime", "tinterval")

_DROP_PROBLEM_COLUMNS = "Please drop the problem columns and try again."

ENGINE_INTERNAL_RULES: tuple[Rule, ...] = (
    Rule(
        id="E-1",
        title="Checking for system-defined composite types in user tables",
        section=Section.ENGINE_INTERNAL,
        scope=Scope.PER_DATABASE,
        applicability=ALWAYS,
        default_severity=Severity.ERROR,
        probe=rows_present(
            ProbeId.SYSTEM_COMPOSITE_TYPE_COLUMNS,
            "System-defined composite types in user tables ({count} column(s))",
        ),
        remediation=(
            "These type OIDs are not stable across PostgreSQL versions. "
            + _DROP_PROBLEM_COLUMNS
        ),
    ),
    Rule(
        id="E-2",
        title="Checking for reg* data types in user tables",
        section=Section.ENGINE_INTERNAL,
        scope=Scope.PER_DATABASE,
        applicability=ALWAYS,
        default_severity=Severity.ERROR,
        probe=rows_present(
            ProbeId.REG_TYPE_COLUMNS,
            "reg* data types in user tables ({count} column(s))",
        ),
        remediation=(
            "These data types reference system OIDs that are not preserved by pg_upgrade. "
            + _DROP_PROBLEM_COLUMNS
        ),
    ),
    Rule(
        id="E-3",
        title="Checking for incompatible aclitem data type in user tables",
        section=Section.ENGINE_INTERNAL,
        scope=Scope.PER_DATABASE,
        applicability=all_of(
            source_at_most(15),
            target_at_least(16),
            reason="not applicable for this upgrade path",
        ),
        default_severity=Severity.ERROR,
        probe=rows_present(
            ProbeId.TYPE_USAGE_COLUMNS,
            "'aclitem' data type found - format changed in PG 16",
            "pg_catalog.aclitem",
        ),
        remediation=(
            'The internal format of "aclitem" changed in PostgreSQL version 16. '
            + _DROP_PROBLEM_COLUMNS
        ),
    ),
    Rule(
        id="E-4",
        title="Checking for invalid sql_identifier user columns",
        section=Section.ENGINE_INTERNAL,
        scope=Scope.PER_DATABASE,
        applicability=source_at_most(11),
        default_severity=Severity.ERROR,
        probe=rows_present(
            ProbeId.TYPE_USAGE_COLUMNS,
            "'sql_identifier' data type found - format changed in PG 12",
            "information_schema.sql_identifier",
        ),
        remediation=(
            "The on-disk format for this data type has changed. " + _DROP_PROBLEM_COLUMNS
        ),
    ),
    Rule(
        id="E-5",
        title="Checking for removed abstime & reltime & tinterval data type in user tables",
        section=Section.ENGINE_INTERNAL,
        scope=Scope.PER_DATABASE_PER_TARGET,
        applicability=source_at_most(11),
        default_severity=Severity.ERROR,
        probe=rows_present(
            ProbeId.TYPE_USAGE_COLUMNS,
            "Removed data type '{target}' found in user tables",
            target_param="pg_catalog.{target}",
        ),
        remediation=(
            "These types have been removed in PostgreSQL version 12. Please drop the "
            "problem columns, or change them to another data type, and try again."
        ),
        targets=REMOVED_DATA_TYPES,
    ),
    Rule(
        id="E-6",
        title="Checking for user-defined encoding conversions",
        section=Section.ENGINE_INTERNAL,
        scope=Scope.PER_DATABASE,
        applicability=source_at_most(13),
        default_severity=Severity.ERROR,
        probe=rows_present(
            ProbeId.USER_ENCODING_CONVERSIONS,
            "User-defined encoding conversions found",
        ),
        remediation=(
            "The conversion function parameters changed in PostgreSQL version 14. "
            "Please remove the encoding conversions and try again."
        ),
    ),
    Rule(
        id="E-7",
        title="Checking for user-defined postfix operators",
        section=Section.ENGINE_INTERNAL,
        scope=Scope.PER_DATABASE,
        applicability=source_at_most(13),
        default_severity=Severity.ERROR,
        probe=rows_present(
            ProbeId.USER_POSTFIX_OPERATORS,
            "User-defined postfix operators found",
        ),
        remediation=(
            "Postfix operators are not supported anymore. Consider dropping them and "
            "replacing them with prefix operators or function calls."
        ),
    ),
    Rule(
        id="E-8",
        title="check_for_incompatible_polymorphics",
        section=Section.ENGINE_INTERNAL,
        scope=Scope.PER_DATABASE,
        applicability=source_at_most(13),
        default_severity=Severity.ERROR,
        probe=rows_present(
            ProbeId.INCOMPATIBLE_POLYMORPHICS,
            "Incompatible polymorphic functions found",
        ),
        remediation=(
            "User-defined objects that refer to internal polymorphic functions with "
            'arguments of type "anyarray" or "anyelement" must be dropped before upgrading '
            "and restored afterwards, changing them to refer to the new corresponding "
            'functions with arguments of type "anycompatiblearray" and "anycompatible".'
        ),
    ),
    Rule(
        id="E-9",
        title="Checking for tables WITH OIDS",
        section=Section.ENGINE_INTERNAL,
        scope=Scope.PER_DATABASE,
        applicability=source_at_most(11),
        default_severity=Severity.ERROR,
        probe=rows_present(
            ProbeId.TABLES_WITH_OIDS,
            "Tables WITH OIDS found",
        ),
        remediation=(
            "Tables declared WITH OIDS are not supported anymore. Consider removing the "
            "oid column using: ALTER TABLE ... SET WITHOUT OIDS;"
        ),
    ),
)
