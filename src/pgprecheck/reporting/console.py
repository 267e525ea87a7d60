"""Console output of precheck reports."""

from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from pgprecheck.core.models import RuleStatus, Severity
from pgprecheck.reporting.renderer import PrecheckReport, RuleReport, SectionReport

RULE_SEPARATOR = "=" * 44
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def _format_cell(value: Any) -> Text:
    return Text("" if value is None else str(value))


class ConsoleReportWriter:
    """Writes a PrecheckReport as text using rich."""

    def __init__(self, console: Console | None = None):
        """Initialize console report writer.

        Args:
            console: Rich console (default: stdout console)
        """
        self.console = console or Console()

    def write(self, report: PrecheckReport) -> None:
        """Write sections followed by the summary."""
        for section in report.sections:
            self.write_section(section)
        self.write_summary(report)

    def write_json(self, report: PrecheckReport) -> None:
        """Write the report as JSON."""
        self.console.print_json(report.model_dump_json())

    def write_section(self, section: SectionReport) -> None:
        self.console.print()
        self.console.print(RULE_SEPARATOR)
        self.console.print(f"[bold]{escape(section.heading)}[/bold]", highlight=False)
        self.console.print(RULE_SEPARATOR)
        for rule in section.rules:
            self.write_rule(rule)

    def write_rule(self, rule: RuleReport) -> None:
        self.console.print()
        self._plain(f"=== {rule.heading} ===")

        if rule.status == RuleStatus.SKIPPED:
            self._plain(f"  Skipped ({rule.skip_reason})", style="dim")
            return

        for finding in rule.findings:
            if finding.severity == Severity.ERROR:
                self._plain(f"❌ ERROR: {finding.summary}", style="red")
            else:
                self._plain(f"⚠️ WARN: {finding.summary}", style="yellow")
            if finding.detail_rows:
                self._print_rows(finding.detail_rows)

        if rule.findings and rule.remediation:
            self._plain(f"   {rule.remediation}")

        for failure in rule.probe_errors:
            where = failure.database_name or "cluster"
            if failure.target:
                where = f"{where}/{failure.target}"
            self._plain(f"⚠️ COULD NOT VERIFY [{where}]: {failure.message}", style="yellow")

        if rule.status == RuleStatus.OK:
            self.console.print("[green]✓ OK[/green]")

    def _plain(self, text: str, style: str | None = None) -> None:
        self.console.print(text, style=style, markup=False, highlight=False)

    def _print_rows(self, rows: list[dict[str, Any]]) -> None:
        columns = list(rows[0].keys())
        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        for column in columns:
            table.add_column(column)
        for row in rows:
            table.add_row(*(_format_cell(row.get(column)) for column in columns))
        self.console.print(table)

    def write_summary(self, report: PrecheckReport) -> None:
        summary = report.summary
        headings = {rule.rule_id: rule.heading for s in report.sections for rule in s.rules}
        self.console.print()
        self.console.print(RULE_SEPARATOR)
        self.console.print("[bold]Precheck Summary[/bold]")
        self.console.print(RULE_SEPARATOR)
        self.console.print(f"Source Version: {summary.source_version}")
        self.console.print(f"Target Version: {summary.target_version}")
        self.console.print(
            f"Blue/Green Check: {'yes' if summary.blue_green_requested else 'no'}"
        )
        self.console.print(f"Database Count: {summary.database_count}")
        for name in summary.rejected_databases:
            self._plain(f"⚠️ WARN: Skipped invalid database name: {name}", style="yellow")
        self.console.print(f"Start Time: {summary.started_at.strftime(TIME_FORMAT)}")
        self.console.print(f"End Time: {summary.finished_at.strftime(TIME_FORMAT)}")
        self.console.print(RULE_SEPARATOR)

        if summary.error_count:
            self.console.print(
                f"[red]❌ Precheck identified {summary.error_count} error(s) in "
                f"{len(summary.failed_rule_ids)} check(s) that need to be addressed "
                "before upgrading.[/red]"
            )
            self._print_rule_ids("Failed Checks:", summary.failed_rule_ids, headings)
        if summary.warning_count:
            self.console.print(
                f"[yellow]⚠️ Precheck identified {summary.warning_count} warning(s) in "
                f"{len(summary.warned_rule_ids)} check(s) that should be reviewed "
                "before upgrading.[/yellow]"
            )
            self._print_rule_ids("Warning Checks:", summary.warned_rule_ids, headings)
        if summary.unverified_rule_ids:
            self.console.print(
                f"[yellow]⚠️ Precheck could not verify {len(summary.unverified_rule_ids)} "
                "check(s); these are not passes and should be re-run.[/yellow]"
            )
            self._print_rule_ids("Unverified Checks:", summary.unverified_rule_ids, headings)
        if summary.passed:
            self.console.print("[green]✓ Precheck passed. Upgrade can proceed.[/green]")
        self.console.print(RULE_SEPARATOR)

    def _print_rule_ids(
        self, title: str, rule_ids: list[str], headings: dict[str, str]
    ) -> None:
        self.console.print(title)
        for rule_id in rule_ids:
            self._plain(f"  - {headings.get(rule_id, rule_id)}")
        self.console.print()
