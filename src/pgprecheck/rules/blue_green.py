"""Blue/Green deployment rules, selected only when Blue/Green checks are requested."""

from pgprecheck.core.exceptions import ProbeError
from pgprecheck.core.models import Scope, Section, Severity
from pgprecheck.interfaces.probe_client import ProbeId
from pgprecheck.rules.predicates import ALWAYS
from pgprecheck.rules.probes import count_positive, rows_present, setting_equals
from pgprecheck.rules.rule import Evidence, ProbeContext, Rule, ScopeUnit

CAPTURE_TRIGGER_NAME = "dts_capture_catalog_start"

CAPACITY_SETTINGS = (
    "max_replication_slots",
    "max_wal_senders",
    "max_logical_replication_workers",
    "max_worker_processes",
)


async def _read_int_setting(ctx: ProbeContext, name: str) -> int:
    value = await ctx.client.show_setting(name)
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ProbeError(f"Unexpected non-integer value for {name}: {value!r}") from e


def _shortfall(setting: str, current: int, operator: str, required: int, label: str) -> Evidence:
    return Evidence(
        summary=f"{setting} ({current}) does not satisfy {operator} {label} ({required})",
        rows=[
            {
                "setting": setting,
                "current": current,
                "required": f"{operator} {required}",
            }
        ],
    )


async def logical_replication_capacity(ctx: ProbeContext, unit: ScopeUnit) -> list[Evidence]:
    """Compare replication capacity settings against the database count.

    Every comparison is evaluated so a single run reports every shortfall:
    slots >= dbs + 1, wal senders >= slots, logical replication workers >=
    dbs + 1, worker processes > logical replication workers. An unreadable
    setting only skips the comparisons that need it.

    Raises:
        ProbeError: If any setting could not be read; shortfalls found from
            the remaining settings travel with it as evidence
    """
    values: dict[str, int] = {}
    errors: list[str] = []
    for name in CAPACITY_SETTINGS:
        try:
            values[name] = await _read_int_setting(ctx, name)
        except ProbeError as e:
            errors.append(str(e))

    required = ctx.database_count + 1
    slots = values.get("max_replication_slots")
    wal_senders = values.get("max_wal_senders")
    lr_workers = values.get("max_logical_replication_workers")
    worker_processes = values.get("max_worker_processes")

    evidence = []
    if slots is not None and slots < required:
        evidence.append(_shortfall("max_replication_slots", slots, ">=", required, "required"))
    if None not in (wal_senders, slots) and wal_senders < slots:
        evidence.append(
            _shortfall("max_wal_senders", wal_senders, ">=", slots, "max_replication_slots")
        )
    if lr_workers is not None and lr_workers < required:
        evidence.append(
            _shortfall("max_logical_replication_workers", lr_workers, ">=", required, "required")
        )
    if None not in (worker_processes, lr_workers) and worker_processes <= lr_workers:
        evidence.append(
            _shortfall(
                "max_worker_processes",
                worker_processes,
                ">",
                lr_workers,
                "max_logical_replication_workers",
            )
        )

    if errors:
        raise ProbeError("; ".join(errors), evidence=evidence)
    return evidence


BLUE_GREEN_RULES: tuple[Rule, ...] = (
    Rule(
        id="BG-1",
        title="Logical replication parameters",
        section=Section.BLUE_GREEN,
        scope=Scope.CLUSTER,
        applicability=ALWAYS,
        default_severity=Severity.ERROR,
        probe=logical_replication_capacity,
        remediation=(
            "Increase the listed parameters in the DB cluster parameter group and reboot. "
            "Blue/Green needs one replication slot and one logical replication worker "
            "per database plus one."
        ),
    ),
    Rule(
        id="BG-2",
        title="Logical replication subscriptions",
        section=Section.BLUE_GREEN,
        scope=Scope.PER_DATABASE,
        applicability=ALWAYS,
        default_severity=Severity.ERROR,
        probe=count_positive(
            ProbeId.SUBSCRIPTION_COUNT,
            "{count} subscription(s) exist - must be dropped before Blue/Green upgrade",
            detail_probe=ProbeId.SUBSCRIPTIONS,
        ),
        remediation="Please drop the SUBSCRIPTION using: DROP SUBSCRIPTION ...;",
    ),
    Rule(
        id="BG-3",
        title="Tables without Primary Key",
        section=Section.BLUE_GREEN,
        scope=Scope.PER_DATABASE,
        applicability=ALWAYS,
        default_severity=Severity.WARNING,
        probe=count_positive(
            ProbeId.TABLES_WITHOUT_PK_COUNT,
            "{count} table(s) without Primary Key",
            detail_probe=ProbeId.TABLES_WITHOUT_PK,
        ),
        remediation="Tables without PK need REPLICA IDENTITY FULL for logical replication.",
    ),
    Rule(
        id="BG-4",
        title="DDL event triggers",
        section=Section.BLUE_GREEN,
        scope=Scope.PER_DATABASE,
        applicability=ALWAYS,
        default_severity=Severity.WARNING,
        probe=count_positive(
            ProbeId.DDL_EVENT_TRIGGER_COUNT,
            "{count} DDL event trigger(s) found - may interfere with Blue/Green deployment",
            detail_probe=ProbeId.DDL_EVENT_TRIGGERS,
        ),
        remediation=(
            "DDL triggers may be triggered during CREATE SUBSCRIPTION on the green "
            "instance. Consider disabling the DDL triggers."
        ),
    ),
    Rule(
        id="BG-5",
        title="rds.logical_replication parameter",
        section=Section.BLUE_GREEN,
        scope=Scope.CLUSTER,
        applicability=ALWAYS,
        default_severity=Severity.ERROR,
        probe=setting_equals(
            "rds.logical_replication",
            "on",
            "rds.logical_replication is NOT enabled (current: {current})",
        ),
        remediation=(
            "Blue/Green deployment requires logical replication to be enabled. "
            "Set rds.logical_replication=1 in the DB cluster parameter group and reboot."
        ),
    ),
    Rule(
        id="BG-6",
        title="DTS trigger",
        section=Section.BLUE_GREEN,
        scope=Scope.PER_DATABASE,
        applicability=ALWAYS,
        default_severity=Severity.ERROR,
        probe=rows_present(
            ProbeId.CAPTURE_TRIGGER,
            f"DTS trigger '{CAPTURE_TRIGGER_NAME}' found",
        ),
        remediation=(
            "This trigger will cause Blue/Green deployment to fail. "
            f"Drop the trigger before upgrade: {CAPTURE_TRIGGER_NAME}()"
        ),
    ),
)
