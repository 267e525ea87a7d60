"""Unit tests for PrecheckRunner.

These run the full built-in catalog against an in-memory probe client.
"""

from unittest.mock import AsyncMock

import pytest

from pgprecheck.core.exceptions import ConnectivityError, InputValidationError
from pgprecheck.core.models import RuleStatus, Section, Severity
from pgprecheck.engine.session import PrecheckRunner
from pgprecheck.interfaces.probe_client import ProbeId
from pgprecheck.reporting.renderer import ReportRenderer
from pgprecheck.rules.catalog import default_catalog

from conftest import FakeProbeClient


def _outcome(session, rule_id):
    return next(o for o in session.outcomes if o.rule_id == rule_id)


class TestVersionDetection:
    """Test detect_source_version."""

    @pytest.mark.asyncio
    async def test_major_version_from_version_num(self):
        client = FakeProbeClient(settings={"server_version_num": "150004"})

        assert await PrecheckRunner(client).detect_source_version() == 15

    @pytest.mark.asyncio
    async def test_unreachable_server(self):
        client = FakeProbeClient(failures={("setting", "server_version_num")})

        with pytest.raises(ConnectivityError, match="Unable to connect to database"):
            await PrecheckRunner(client).detect_source_version()

    @pytest.mark.asyncio
    async def test_garbage_version(self):
        client = FakeProbeClient(settings={"server_version_num": "sixteen"})

        with pytest.raises(ConnectivityError, match="server_version_num"):
            await PrecheckRunner(client).detect_source_version()


class TestPrecheckRunner:
    """Test PrecheckRunner.run."""

    @pytest.mark.asyncio
    async def test_clean_cluster_passes(self, fake_client):
        session = await PrecheckRunner(fake_client).run(16, blue_green_requested=True)

        assert session.sealed
        assert session.source_version == 13
        assert session.error_count == 0
        assert session.warning_count == 0
        assert [o.rule_id for o in session.outcomes] == default_catalog().rule_ids
        assert ReportRenderer().render(session).exit_status == 0

    @pytest.mark.asyncio
    async def test_prepared_transactions_fail(self):
        client = FakeProbeClient(
            scalars={(ProbeId.PREPARED_XACT_COUNT,): "2"},
            rows={(ProbeId.PREPARED_XACTS,): [{"gid": "tx1"}, {"gid": "tx2"}]},
        )

        session = await PrecheckRunner(client).run(16, blue_green_requested=False)

        outcome = _outcome(session, "A-1")
        assert outcome.status == RuleStatus.FAILED
        assert len(outcome.findings) == 1
        assert outcome.findings[0].summary.startswith("2 uncommitted")
        assert session.error_count == 1
        assert session.failed_rule_ids == ["A-1"]
        assert ReportRenderer().render(session).exit_status == 1

    @pytest.mark.asyncio
    async def test_source_13_skips_pg11_rules(self, fake_client):
        session = await PrecheckRunner(fake_client).run(16, blue_green_requested=False)

        for rule_id in ("E-4", "E-5", "E-9"):
            outcome = _outcome(session, rule_id)
            assert outcome.status == RuleStatus.SKIPPED
            assert outcome.skip_reason == "source version > 11"
        probed = {call[1] for call in fake_client.calls}
        assert ProbeId.TABLES_WITH_OIDS not in probed

    @pytest.mark.asyncio
    async def test_blue_green_not_requested(self, fake_client):
        session = await PrecheckRunner(fake_client).run(16, blue_green_requested=False)

        blue_green = [o for o in session.outcomes if o.section == Section.BLUE_GREEN]
        assert len(blue_green) == 6
        assert all(o.status == RuleStatus.SKIPPED for o in blue_green)

    @pytest.mark.asyncio
    async def test_pg11_source_runs_removed_types_per_database(self):
        client = FakeProbeClient(
            databases=["appdb", "sales"],
            settings={"server_version_num": "110022"},
            rows={
                ("sales", ProbeId.TYPE_USAGE_COLUMNS, "pg_catalog.abstime"): [
                    {"nspname": "public", "relname": "events", "attname": "created"}
                ]
            },
        )

        session = await PrecheckRunner(client).run(12, blue_green_requested=False)

        outcome = _outcome(session, "E-5")
        assert outcome.status == RuleStatus.FAILED
        assert [(f.database_name, f.target) for f in outcome.findings] == [("sales", "abstime")]
        assert outcome.findings[0].summary.startswith("[sales/abstime]")

    @pytest.mark.asyncio
    async def test_outdated_extension_is_warning(self):
        client = FakeProbeClient(
            rows={
                ("appdb", ProbeId.OUTDATED_EXTENSION_VERSION, "postgis"): [
                    {"name": "postgis", "installed_version": "3.1.4", "default_version": "3.4.0"}
                ]
            },
        )

        session = await PrecheckRunner(client).run(16, blue_green_requested=False)

        outcome = _outcome(session, "A-9")
        assert outcome.status == RuleStatus.WARNED
        assert outcome.findings[0].severity == Severity.WARNING
        assert "postgis installed: 3.1.4, available: 3.4.0" in outcome.findings[0].summary
        assert session.error_count == 0
        assert session.warned_rule_ids == ["A-9"]

    @pytest.mark.asyncio
    async def test_probe_failure_is_unverified_not_passed(self):
        client = FakeProbeClient(failures={("appdb", ProbeId.REG_TYPE_COLUMNS)})

        session = await PrecheckRunner(client).run(16, blue_green_requested=False)

        assert _outcome(session, "E-2").status == RuleStatus.UNVERIFIED
        assert session.unverified_rule_ids == ["E-2"]
        assert session.error_count == 0
        assert not ReportRenderer().render(session).summary.passed

    @pytest.mark.asyncio
    async def test_no_user_databases(self):
        client = FakeProbeClient(databases=["template0", "template1", "rdsadmin"])

        session = await PrecheckRunner(client).run(16, blue_green_requested=True)

        assert session.databases == ()
        assert _outcome(session, "E-1").status == RuleStatus.OK
        assert _outcome(session, "BG-1").status == RuleStatus.OK

    @pytest.mark.asyncio
    async def test_rejected_database_names_recorded(self):
        client = FakeProbeClient(databases=["appdb", "template0", "bad;name", "evil\n", "rdsadmin"])

        session = await PrecheckRunner(client).run(16, blue_green_requested=False)

        assert session.databases == ("appdb",)
        assert session.rejected_databases == ("bad;name", "evil\n")
        assert all(call[0] in ("appdb", "postgres") for call in client.calls)

    @pytest.mark.asyncio
    async def test_source_not_below_target(self, fake_client):
        with pytest.raises(InputValidationError, match=r"Source version \(13\) >= Target"):
            await PrecheckRunner(fake_client).run(13, blue_green_requested=False)

    @pytest.mark.asyncio
    async def test_enumeration_failure_is_fatal(self):
        client = FakeProbeClient(failures={("list_databases",)})

        with pytest.raises(ConnectivityError, match="Unable to list databases"):
            await PrecheckRunner(client).run(16, blue_green_requested=False)

    @pytest.mark.asyncio
    async def test_given_source_version_skips_detection(self, fake_client):
        fake_client.show_setting = AsyncMock(side_effect=AssertionError("not expected"))

        session = await PrecheckRunner(fake_client).run(
            16, blue_green_requested=False, source_version=14
        )

        assert session.source_version == 14

    @pytest.mark.asyncio
    async def test_runs_are_idempotent(self):
        client = FakeProbeClient(
            databases=["appdb", "sales"],
            scalars={("sales", ProbeId.SUBSCRIPTION_COUNT): "1"},
            rows={("appdb", ProbeId.USER_POSTFIX_OPERATORS): [{"oprname": "!"}]},
        )

        first = await PrecheckRunner(client).run(16, blue_green_requested=True)
        second = await PrecheckRunner(client).run(16, blue_green_requested=True)

        first_report = ReportRenderer().render(first)
        second_report = ReportRenderer().render(second)
        assert first_report.sections == second_report.sections
        assert first_report.exit_status == second_report.exit_status
