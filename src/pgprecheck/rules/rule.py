"""Rule model for the precheck catalog."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from pgprecheck.core.models import Scope, Section, Severity
from pgprecheck.interfaces.probe_client import ProbeClient, Row


@dataclass(frozen=True)
class VersionContext:
    """Inputs to applicability: the upgrade path and deployment mode."""

    source_version: int
    target_version: int
    blue_green_requested: bool


@dataclass(frozen=True)
class Applicability:
    """Closed predicate over a VersionContext.

    Attributes:
        predicate: Pure function of the version context
        skip_reason: Reported when the predicate is false
        description: Human-readable form of the constraint
    """

    predicate: Callable[[VersionContext], bool]
    skip_reason: str
    description: str

    def __call__(self, context: VersionContext) -> bool:
        return self.predicate(context)


@dataclass(frozen=True)
class ScopeUnit:
    """One indivisible probe target.

    Cluster-scope units carry the maintenance database so the probe knows
    where to connect, but findings from them are not attributed to it.
    """

    database: str
    target: str | None = None

    @property
    def label(self) -> str:
        """Identifier shown in finding summaries."""
        if self.target is None:
            return self.database
        return f"{self.database}/{self.target}"


@dataclass(frozen=True)
class Evidence:
    """A non-empty probe signal, before attribution to a rule and unit.

    Attributes:
        summary: One-line description of the incompatibility
        rows: Tabular evidence
        severity: Overrides the rule's default severity when set
    """

    summary: str
    rows: list[Row] = field(default_factory=list)
    severity: Severity | None = None


@dataclass(frozen=True)
class ProbeContext:
    """Read-only state shared by every probe in a session."""

    client: ProbeClient
    database_count: int
    maintenance_database: str = "postgres"


Probe = Callable[[ProbeContext, ScopeUnit], Awaitable[list[Evidence]]]


@dataclass(frozen=True)
class Rule:
    """Immutable catalog entry.

    Attributes:
        id: Stable identifier, e.g. "A-5"
        title: Check name as shown in the report
        section: Report section
        scope: Fan-out of the probe
        applicability: Version gate for the rule
        default_severity: Severity of findings unless the probe overrides it
        probe: Coroutine producing evidence for one scope unit
        remediation: Operator guidance shown with findings
        targets: Inner target list for PER_DATABASE_PER_TARGET rules
    """

    id: str
    title: str
    section: Section
    scope: Scope
    applicability: Applicability
    default_severity: Severity
    probe: Probe
    remediation: str
    targets: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.scope == Scope.PER_DATABASE_PER_TARGET and not self.targets:
            raise ValueError(f"Rule {self.id} fans out per target but has no targets")
        if self.scope != Scope.PER_DATABASE_PER_TARGET and self.targets:
            raise ValueError(f"Rule {self.id} has targets but scope {self.scope.value}")

    @property
    def heading(self) -> str:
        """Report heading, e.g. "A-1. check_for_prepared_transactions"."""
        return f"{self.id}. {self.title}"

    def scope_units(self, databases: tuple[str, ...], maintenance_database: str) -> list[ScopeUnit]:
        """Expand the rule's scope into concrete units.

        Args:
            databases: Enumerated user databases, in session order
            maintenance_database: Database used for cluster-wide probes

        Returns:
            Units in deterministic order
        """
        if self.scope == Scope.CLUSTER:
            return [ScopeUnit(database=maintenance_database)]
        if self.scope == Scope.PER_DATABASE:
            return [ScopeUnit(database=db) for db in databases]
        return [ScopeUnit(database=db, target=t) for db in databases for t in self.targets]

    def __repr__(self) -> str:
        return f"<Rule {self.id} [{self.section.value}] {self.scope.value}>"
