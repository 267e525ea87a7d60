"""Rendering of a sealed session into a structured report."""

from datetime import datetime

from pydantic import BaseModel, Field

from pgprecheck.core.exceptions import PrecheckError
from pgprecheck.core.models import (
    Finding,
    PrecheckSession,
    ProbeFailure,
    RuleStatus,
    Section,
)

MAX_EXIT_STATUS = 255


class RuleReport(BaseModel):
    """Reported result of one rule."""

    rule_id: str
    title: str
    status: RuleStatus
    skip_reason: str | None = None
    remediation: str = ""
    findings: list[Finding] = Field(default_factory=list)
    probe_errors: list[ProbeFailure] = Field(default_factory=list)

    @property
    def heading(self) -> str:
        """Rule heading, e.g. "A-1. check_for_prepared_transactions"."""
        return f"{self.rule_id}. {self.title}"


class SectionReport(BaseModel):
    """Rules of one catalog section, in catalog order."""

    section: Section
    heading: str
    rules: list[RuleReport] = Field(default_factory=list)


class ReportSummary(BaseModel):
    """Closing summary block."""

    source_version: int
    target_version: int
    blue_green_requested: bool
    database_count: int
    rejected_databases: list[str] = Field(default_factory=list)
    started_at: datetime
    finished_at: datetime
    error_count: int
    warning_count: int
    failed_rule_ids: list[str] = Field(default_factory=list)
    warned_rule_ids: list[str] = Field(default_factory=list)
    unverified_rule_ids: list[str] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        """True when nothing failed, warned, or went unverified."""
        return not (self.error_count or self.warning_count or self.unverified_rule_ids)


class PrecheckReport(BaseModel):
    """Structured precheck report."""

    sections: list[SectionReport] = Field(default_factory=list)
    summary: ReportSummary
    exit_status: int


class ReportRenderer:
    """Pure transformation of a sealed session into a PrecheckReport."""

    def render(self, session: PrecheckSession) -> PrecheckReport:
        """Render a sealed session.

        Sections with no executed or skipped rule are omitted, so the
        Blue/Green section only appears when it has entries.

        Args:
            session: Sealed session

        Returns:
            PrecheckReport

        Raises:
            PrecheckError: If the session is not sealed
        """
        if not session.sealed or session.finished_at is None:
            raise PrecheckError("Cannot render a session that has not been sealed")

        sections: dict[Section, SectionReport] = {}
        for outcome in session.outcomes:
            section = sections.get(outcome.section)
            if section is None:
                section = SectionReport(section=outcome.section, heading=outcome.section.heading)
                sections[outcome.section] = section
            section.rules.append(
                RuleReport(
                    rule_id=outcome.rule_id,
                    title=outcome.title,
                    status=outcome.status,
                    skip_reason=outcome.skip_reason,
                    remediation=outcome.remediation,
                    findings=list(outcome.findings),
                    probe_errors=list(outcome.probe_errors),
                )
            )

        summary = ReportSummary(
            source_version=session.source_version,
            target_version=session.target_version,
            blue_green_requested=session.blue_green_requested,
            database_count=session.database_count,
            rejected_databases=list(session.rejected_databases),
            started_at=session.started_at,
            finished_at=session.finished_at,
            error_count=session.error_count,
            warning_count=session.warning_count,
            failed_rule_ids=list(session.failed_rule_ids),
            warned_rule_ids=list(session.warned_rule_ids),
            unverified_rule_ids=list(session.unverified_rule_ids),
        )

        ordered = [sections[s] for s in Section if s in sections]
        return PrecheckReport(
            sections=ordered, summary=summary, exit_status=exit_status(session)
        )


def exit_status(session: PrecheckSession) -> int:
    """Process exit status: the error count, clamped to 0..255."""
    return max(0, min(session.error_count, MAX_EXIT_STATUS))
