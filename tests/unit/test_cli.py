"""Unit tests for the pgprecheck CLI."""

import json
from unittest.mock import patch

import click
import pytest
import structlog
from click.testing import CliRunner

from pgprecheck.cli.main import cli, parse_yes_no
from pgprecheck.core.config import PrecheckConfig, ReportConfig
from pgprecheck.interfaces.probe_client import ProbeId

from conftest import FakeProbeClient

ARGS = ["db.example.com", "5432", "admin", "16"]


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def client() -> FakeProbeClient:
    return FakeProbeClient(databases=["appdb", "template0", "rdsadmin"])


@pytest.fixture
def config() -> PrecheckConfig:
    return PrecheckConfig()


@pytest.fixture(autouse=True)
def patched(client, config):
    """Run the CLI against the fake client without touching logging or files."""
    with (
        patch("pgprecheck.cli.main.PostgresAdapter", return_value=client) as adapter,
        patch("pgprecheck.cli.main.load_config", return_value=config),
        patch("pgprecheck.cli.main.setup_logging"),
    ):
        yield adapter


class TestParseYesNo:
    """Test parse_yes_no."""

    @pytest.mark.parametrize("answer", ["yes", "y", "YES", " Y "])
    def test_yes(self, answer):
        assert parse_yes_no(answer) is True

    @pytest.mark.parametrize("answer", ["no", "n", "No"])
    def test_no(self, answer):
        assert parse_yes_no(answer) is False

    def test_other_answers_rejected(self):
        with pytest.raises(click.BadParameter):
            parse_yes_no("maybe")


class TestCli:
    """Test the pgprecheck command."""

    def test_long_form_flags_rejected(self, runner, patched):
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 2
        patched.assert_not_called()

    def test_invalid_arguments_exit_1(self, runner, patched):
        result = runner.invoke(cli, ["db.example.com", "99999", "admin", "16"])

        assert result.exit_code == 1
        assert "Invalid port number" in result.output
        patched.assert_not_called()

    def test_clean_run(self, runner, client, patched):
        result = runner.invoke(cli, ARGS, input="s3cret\nno\n")

        assert result.exit_code == 0, result.output
        assert "Source Version (detected): 13" in result.output
        assert "✓ Version check passed: 13 -> 16" in result.output
        assert "Precheck passed. Upgrade can proceed." in result.output
        assert "Blue/Green checks not requested" in result.output
        assert "s3cret" not in result.output
        assert patched.call_args.kwargs["password"] == "s3cret"
        assert client.closed

    def test_run_context_replaced_per_invocation(self, runner):
        structlog.contextvars.bind_contextvars(host="stale.example.com", stale=True)

        result = runner.invoke(cli, ARGS, input="s3cret\nno\n")

        assert result.exit_code == 0, result.output
        assert structlog.contextvars.get_contextvars() == {
            "host": "db.example.com",
            "port": 5432,
            "user": "admin",
        }
        structlog.contextvars.clear_contextvars()

    def test_reprompts_until_yes_or_no(self, runner):
        result = runner.invoke(cli, ARGS, input="s3cret\nmaybe\ny\n")

        assert result.exit_code == 0, result.output
        assert "Please answer yes or no." in result.output
        assert "=== BG-1. Logical replication parameters ===" in result.output

    def test_exit_status_is_error_count(self, runner, client):
        client.scalars[(ProbeId.PREPARED_XACT_COUNT,)] = "1"
        client.rows[("appdb", ProbeId.USER_POSTFIX_OPERATORS)] = [{"oprname": "!"}]

        result = runner.invoke(cli, ARGS, input="s3cret\nno\n")

        assert result.exit_code == 2
        assert "Failed Checks:" in result.output
        assert "A-1. check_for_prepared_transactions" in result.output

    def test_connectivity_failure_exit_1(self, runner, client):
        client.failures.add(("setting", "server_version_num"))

        result = runner.invoke(cli, ARGS, input="s3cret\n")

        assert result.exit_code == 1
        assert "Unable to connect to database" in result.output
        assert client.closed

    def test_source_not_below_target_exit_1(self, runner, client):
        client.settings["server_version_num"] = "160002"

        result = runner.invoke(cli, ARGS, input="s3cret\n")

        assert result.exit_code == 1
        assert "Source version (16) >= Target version (16)" in result.output

    def test_json_report(self, runner, config):
        config.report = ReportConfig(format="json")

        result = runner.invoke(cli, ARGS, input="s3cret\nno\n")

        assert result.exit_code == 0, result.output
        start = result.output.index("{\n")
        report, _ = json.JSONDecoder().raw_decode(result.output[start:])
        assert report["exit_status"] == 0
        assert report["summary"]["database_count"] == 1
