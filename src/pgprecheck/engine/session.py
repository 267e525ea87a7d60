"""Precheck session orchestration."""

from pgprecheck.core.exceptions import ConnectivityError, ProbeError
from pgprecheck.core.models import PrecheckSession, RuleOutcome
from pgprecheck.core.validation import validate_upgrade_path
from pgprecheck.engine.aggregator import ResultAggregator
from pgprecheck.engine.enumerator import DatabaseEnumerator, EnumerationResult
from pgprecheck.engine.executor import RuleExecutor
from pgprecheck.interfaces.probe_client import ProbeClient
from pgprecheck.rules.catalog import RuleCatalog, default_catalog
from pgprecheck.rules.gate import VersionGate
from pgprecheck.rules.rule import ProbeContext, Rule
from pgprecheck.utils.logging import get_logger

logger = get_logger(__name__)


class PrecheckRunner:
    """Orchestrates one precheck session.

    This runner coordinates the session without knowing the specifics of
    any rule. It handles:
    - Version detection and database enumeration (fatal on failure)
    - Gating every catalog rule and recording skips explicitly
    - Concurrent execution of applicable rules
    - Catalog-ordered aggregation and sealing
    """

    def __init__(
        self,
        client: ProbeClient,
        catalog: RuleCatalog | None = None,
        executor: RuleExecutor | None = None,
        enumerator: DatabaseEnumerator | None = None,
        gate: VersionGate | None = None,
        aggregator: ResultAggregator | None = None,
        maintenance_database: str = "postgres",
    ):
        """Initialize precheck runner.

        Args:
            client: Probe client for the target cluster
            catalog: Rule catalog (default: built-in catalog)
            executor: Rule executor
            enumerator: Database enumerator
            gate: Version gate
            aggregator: Result aggregator
            maintenance_database: Database used for cluster-wide probes
        """
        self.client = client
        self.catalog = catalog or default_catalog()
        self.executor = executor or RuleExecutor()
        self.enumerator = enumerator or DatabaseEnumerator()
        self.gate = gate or VersionGate()
        self.aggregator = aggregator or ResultAggregator()
        self.maintenance_database = maintenance_database

    async def detect_source_version(self) -> int:
        """Detect the source major version from server_version_num.

        Returns:
            Major version, e.g. 13 for 130012

        Raises:
            ConnectivityError: If the server cannot be reached or answers
                with something that is not a version number
        """
        try:
            raw = await self.client.show_setting("server_version_num")
        except ProbeError as e:
            raise ConnectivityError(
                "Unable to connect to database. Please verify credentials and connectivity."
            ) from e

        try:
            version_num = int(raw)
        except (TypeError, ValueError) as e:
            raise ConnectivityError(f"Unexpected server_version_num: {raw!r}") from e

        major = version_num // 10000
        logger.info("source_version_detected", server_version_num=version_num, major=major)
        return major

    async def enumerate_databases(self) -> EnumerationResult:
        """List and validate the databases to probe.

        Raises:
            ConnectivityError: If the database list cannot be read
        """
        try:
            raw_names = await self.client.list_databases()
        except ProbeError as e:
            raise ConnectivityError(f"Unable to list databases: {e}") from e

        return self.enumerator.enumerate(raw_names)

    async def run(
        self,
        target_version: int,
        blue_green_requested: bool,
        source_version: int | None = None,
    ) -> PrecheckSession:
        """Run every catalog rule and return the sealed session.

        Args:
            target_version: Target major version
            blue_green_requested: Whether Blue/Green rules run
            source_version: Already detected source major version

        Returns:
            Sealed PrecheckSession

        Raises:
            ConnectivityError: If detection or enumeration fails
            InputValidationError: If source >= target
        """
        if source_version is None:
            source_version = await self.detect_source_version()
        validate_upgrade_path(source_version, target_version)

        enumeration = await self.enumerate_databases()
        session = PrecheckSession(
            source_version=source_version,
            target_version=target_version,
            blue_green_requested=blue_green_requested,
            databases=enumeration.databases,
            rejected_databases=enumeration.rejected,
        )
        logger.info(
            "precheck_session_started",
            source_version=source_version,
            target_version=target_version,
            blue_green=blue_green_requested,
            database_count=session.database_count,
        )

        outcomes: dict[str, RuleOutcome] = {}
        applicable: list[Rule] = []
        for rule in self.catalog:
            decision = self.gate.evaluate(
                rule, source_version, target_version, blue_green_requested
            )
            if decision.applicable:
                applicable.append(rule)
            else:
                logger.debug("rule_skipped", rule_id=rule.id, reason=decision.reason)
                outcomes[rule.id] = RuleOutcome.skipped(rule, decision.reason or "not applicable")

        context = ProbeContext(
            client=self.client,
            database_count=session.database_count,
            maintenance_database=self.maintenance_database,
        )
        executed = await self.executor.execute_all(applicable, session.databases, context)
        outcomes.update((outcome.rule_id, outcome) for outcome in executed)

        for rule in self.catalog:
            self.aggregator.accumulate(session, outcomes[rule.id])

        return self.aggregator.seal(session)
