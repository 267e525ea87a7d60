"""Core data models for pgprecheck."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(timezone.utc)


class Severity(str, Enum):
    """Severity of a finding."""

    ERROR = "error"
    WARNING = "warning"


class Section(str, Enum):
    """Report section a rule belongs to, in report order."""

    PRECHECK_AURORA_RDS = "precheck-aurora-rds"
    ENGINE_INTERNAL = "engine-internal"
    BLUE_GREEN = "blue-green"

    @property
    def heading(self) -> str:
        """Human-readable section heading."""
        return SECTION_HEADINGS[self]


SECTION_HEADINGS = {
    Section.PRECHECK_AURORA_RDS: "Aurora/RDS Precheck (pg_upgrade_precheck.log)",
    Section.ENGINE_INTERNAL: "Engine Checks (pg_upgrade_internal.log)",
    Section.BLUE_GREEN: "Blue/Green Deployment Checks",
}


class Scope(str, Enum):
    """How a rule fans out over scope units."""

    CLUSTER = "cluster"
    PER_DATABASE = "per-database"
    PER_DATABASE_PER_TARGET = "per-database-per-target"


class RuleStatus(str, Enum):
    """Reported status of a rule after execution."""

    OK = "ok"
    SKIPPED = "skipped"
    FAILED = "failed"
    WARNED = "warned"
    UNVERIFIED = "unverified"


class Finding(BaseModel):
    """One concrete, non-empty incompatibility signal from a probe."""

    rule_id: str
    database_name: str | None = None
    target: str | None = None
    severity: Severity
    summary: str
    detail_rows: list[dict[str, Any]] = Field(default_factory=list)


class ProbeFailure(BaseModel):
    """A scope unit whose probe could not be evaluated."""

    rule_id: str
    database_name: str | None = None
    target: str | None = None
    message: str


class RuleOutcome(BaseModel):
    """Result of running one rule across its full scope."""

    rule_id: str
    title: str
    section: Section
    applicable: bool
    skip_reason: str | None = None
    remediation: str = ""
    findings: list[Finding] = Field(default_factory=list)
    probe_errors: list[ProbeFailure] = Field(default_factory=list)

    @classmethod
    def skipped(cls, rule: Any, reason: str) -> "RuleOutcome":
        """Build the outcome of a rule that was not applicable.

        Args:
            rule: Rule definition
            reason: Why the rule was skipped

        Returns:
            RuleOutcome with applicable=False
        """
        return cls(
            rule_id=rule.id,
            title=rule.title,
            section=rule.section,
            applicable=False,
            skip_reason=reason,
            remediation=rule.remediation,
        )

    def findings_with(self, severity: Severity) -> list[Finding]:
        """Get findings of a given severity."""
        return [f for f in self.findings if f.severity == severity]

    @property
    def error_count(self) -> int:
        """Number of error-severity findings."""
        return len(self.findings_with(Severity.ERROR))

    @property
    def warning_count(self) -> int:
        """Number of warning-severity findings."""
        return len(self.findings_with(Severity.WARNING))

    @property
    def status(self) -> RuleStatus:
        """Derive the reported status.

        Findings outrank probe errors; a rule with only probe errors is
        unverified, never ok.
        """
        if not self.applicable:
            return RuleStatus.SKIPPED
        if self.error_count:
            return RuleStatus.FAILED
        if self.warning_count:
            return RuleStatus.WARNED
        if self.probe_errors:
            return RuleStatus.UNVERIFIED
        return RuleStatus.OK


class PrecheckSession(BaseModel):
    """Aggregate root for one precheck run.

    Created after version detection and database enumeration succeed,
    accumulates outcomes in catalog order, then sealed.
    """

    source_version: int
    target_version: int
    blue_green_requested: bool
    databases: tuple[str, ...]
    rejected_databases: tuple[str, ...] = ()
    outcomes: list[RuleOutcome] = Field(default_factory=list)
    error_count: int = 0
    warning_count: int = 0
    failed_rule_ids: list[str] = Field(default_factory=list)
    warned_rule_ids: list[str] = Field(default_factory=list)
    unverified_rule_ids: list[str] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=utc_now)
    finished_at: datetime | None = None

    @property
    def database_count(self) -> int:
        """Number of enumerated user databases."""
        return len(self.databases)

    @property
    def sealed(self) -> bool:
        """Whether the session has been sealed."""
        return self.finished_at is not None

    @property
    def probe_error_count(self) -> int:
        """Total probe failures across all outcomes."""
        return sum(len(o.probe_errors) for o in self.outcomes)
