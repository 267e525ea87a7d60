"""Main CLI entry point for pgprecheck."""

import asyncio
import sys
from typing import NoReturn

import click
from rich.console import Console

from pgprecheck.adapters.postgres_adapter import PostgresAdapter
from pgprecheck.core.config import PrecheckConfig, load_config
from pgprecheck.core.exceptions import PrecheckError
from pgprecheck.core.models import PrecheckSession
from pgprecheck.core.validation import (
    ConnectionTarget,
    validate_connection_args,
    validate_upgrade_path,
)
from pgprecheck.engine.enumerator import DatabaseEnumerator
from pgprecheck.engine.executor import RuleExecutor
from pgprecheck.engine.session import PrecheckRunner
from pgprecheck.reporting.console import RULE_SEPARATOR, ConsoleReportWriter
from pgprecheck.reporting.renderer import ReportRenderer
from pgprecheck.utils.logging import (
    bind_run_context,
    clear_run_context,
    get_logger,
    log_error,
    setup_logging,
)

console = Console()
err_console = Console(stderr=True)
logger = get_logger(__name__)

YES_ANSWERS = ("yes", "y")
NO_ANSWERS = ("no", "n")


def parse_yes_no(value: str) -> bool:
    """Parse a yes/no answer, case-insensitively.

    Raises:
        click.BadParameter: If the answer is neither yes/y nor no/n, so the
            prompt asks again
    """
    answer = value.strip().lower()
    if answer in YES_ANSWERS:
        return True
    if answer in NO_ANSWERS:
        return False
    raise click.BadParameter("Please answer yes or no.")


def _fail(message: str) -> NoReturn:
    err_console.print(f"Error: {message}", style="red", markup=False, highlight=False)
    sys.exit(1)


def _build_runner(
    target: ConnectionTarget, password: str, config: PrecheckConfig
) -> PrecheckRunner:
    connection = config.connection
    client = PostgresAdapter(
        host=target.host,
        port=target.port,
        user=target.user,
        password=password,
        maintenance_database=connection.maintenance_database,
        ssl=connection.ssl,
        connect_timeout=connection.connect_timeout_seconds,
        probe_timeout=connection.probe_timeout_seconds,
        connect_retries=connection.connect_retries,
    )
    return PrecheckRunner(
        client=client,
        executor=RuleExecutor(
            max_concurrent=config.execution.max_concurrent_probes,
            timeout_seconds=connection.probe_timeout_seconds,
        ),
        enumerator=DatabaseEnumerator(excluded=config.enumeration.excluded_databases),
        maintenance_database=connection.maintenance_database,
    )


async def _run_precheck(
    runner: PrecheckRunner, target: ConnectionTarget, status: Console
) -> PrecheckSession:
    try:
        source_version = await runner.detect_source_version()

        status.print(RULE_SEPARATOR)
        status.print("[bold]PostgreSQL Major Version Upgrade Precheck[/bold]")
        status.print(RULE_SEPARATOR)
        status.print(f"Host: {target.host}", markup=False, highlight=False)
        status.print(f"Port: {target.port}")
        status.print(f"User: {target.user}", markup=False, highlight=False)
        status.print(f"Source Version (detected): {source_version}")
        status.print(f"Target Version: {target.target_version}")

        validate_upgrade_path(source_version, target.target_version)
        status.print(
            f"[green]✓ Version check passed: {source_version} -> "
            f"{target.target_version}[/green]"
        )

        blue_green = click.prompt(
            "Run Blue/Green deployment checks? (yes/no)",
            value_proc=parse_yes_no,
            err=status.stderr,
        )
        return await runner.run(
            target_version=target.target_version,
            blue_green_requested=blue_green,
            source_version=source_version,
        )
    finally:
        await runner.client.close()


@click.command()
@click.argument("host")
@click.argument("port")
@click.argument("user")
@click.argument("target_version")
def cli(host: str, port: str, user: str, target_version: str) -> None:
    """Check a PostgreSQL cluster for major version upgrade blockers.

    Connects to HOST:PORT as USER, detects the running major version and
    reports everything that would block or complicate an upgrade to
    TARGET_VERSION. The exit status is the number of errors found.
    """
    try:
        target = validate_connection_args(host, port, user, target_version)
        config = load_config()
    except PrecheckError as e:
        _fail(str(e))

    setup_logging(
        level=config.logging.level,
        format=config.logging.format,
        output=config.logging.output,
    )
    clear_run_context()
    bind_run_context(host=target.host, port=target.port, user=target.user)
    json_output = config.report.format == "json"
    status = err_console if json_output else console

    password = click.prompt("Enter PostgreSQL password", hide_input=True, err=json_output)
    runner = _build_runner(target, password, config)

    try:
        session = asyncio.run(_run_precheck(runner, target, status))
    except PrecheckError as e:
        log_error(logger, e, operation="precheck")
        _fail(str(e))

    report = ReportRenderer().render(session)
    writer = ConsoleReportWriter(console)
    if json_output:
        writer.write_json(report)
    else:
        writer.write(report)

    logger.info(
        "precheck_complete",
        error_count=report.summary.error_count,
        warning_count=report.summary.warning_count,
        exit_status=report.exit_status,
    )
    sys.exit(report.exit_status)


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
