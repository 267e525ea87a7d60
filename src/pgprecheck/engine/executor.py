"""Rule executor fanning a rule's probe out across its scope units."""

import asyncio

from pgprecheck.core.exceptions import ProbeError
from pgprecheck.core.models import Finding, ProbeFailure, RuleOutcome, Scope
from pgprecheck.rules.rule import Evidence, ProbeContext, Rule, ScopeUnit
from pgprecheck.utils.logging import get_logger

logger = get_logger(__name__)


class RuleExecutor:
    """Executes applicable rules with bounded concurrency.

    Handles:
    - Scope fan-out (cluster, per database, per database and target)
    - A shared limit on in-flight probe calls
    - Per-unit timeouts
    - Failure isolation: a failing unit becomes a probe error, never a
      finding, and never cancels sibling units
    """

    def __init__(self, max_concurrent: int = 8, timeout_seconds: float = 30.0):
        """Initialize rule executor.

        Args:
            max_concurrent: Maximum probe calls in flight at once
            timeout_seconds: Timeout for one scope unit's probe
        """
        self.max_concurrent = max_concurrent
        self.timeout_seconds = timeout_seconds
        self._semaphore: asyncio.Semaphore | None = None
        logger.debug(
            "rule_executor_initialized",
            max_concurrent=max_concurrent,
            timeout_seconds=timeout_seconds,
        )

    @property
    def semaphore(self) -> asyncio.Semaphore:
        """Semaphore bounding concurrent probes, created on the running loop."""
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self.max_concurrent)
        return self._semaphore

    async def execute_all(
        self,
        rules: list[Rule],
        databases: tuple[str, ...],
        context: ProbeContext,
    ) -> list[RuleOutcome]:
        """Execute several rules concurrently.

        Args:
            rules: Applicable rules, in catalog order
            databases: Enumerated databases
            context: Shared probe context

        Returns:
            One outcome per rule, in the order of ``rules`` regardless of
            completion order
        """
        return list(
            await asyncio.gather(*(self.execute(rule, databases, context) for rule in rules))
        )

    async def execute(
        self,
        rule: Rule,
        databases: tuple[str, ...],
        context: ProbeContext,
    ) -> RuleOutcome:
        """Execute one rule across its full scope.

        Args:
            rule: Rule already judged applicable
            databases: Enumerated databases
            context: Shared probe context

        Returns:
            RuleOutcome with findings and probe errors in scope-unit order
        """
        units = rule.scope_units(databases, context.maintenance_database)
        logger.debug("executing_rule", rule_id=rule.id, units=len(units))

        results = await asyncio.gather(*(self._run_unit(rule, unit, context) for unit in units))

        outcome = RuleOutcome(
            rule_id=rule.id,
            title=rule.title,
            section=rule.section,
            applicable=True,
            remediation=rule.remediation,
        )
        for unit, (evidence, failure) in zip(units, results):
            outcome.findings.extend(self._to_finding(rule, unit, e) for e in evidence)
            if failure is not None:
                outcome.probe_errors.append(failure)

        logger.info(
            "rule_completed",
            rule_id=rule.id,
            status=outcome.status.value,
            findings=len(outcome.findings),
            probe_errors=len(outcome.probe_errors),
        )
        return outcome

    async def _run_unit(
        self, rule: Rule, unit: ScopeUnit, context: ProbeContext
    ) -> tuple[list[Evidence], ProbeFailure | None]:
        evidence: list[Evidence] = []
        async with self.semaphore:
            try:
                found = await asyncio.wait_for(
                    rule.probe(context, unit), timeout=self.timeout_seconds
                )
                return found, None
            except asyncio.TimeoutError:
                logger.error(
                    "probe_timeout",
                    rule_id=rule.id,
                    database=unit.database,
                    target=unit.target,
                    timeout=self.timeout_seconds,
                )
                message = f"Probe timed out after {self.timeout_seconds} seconds"
            except ProbeError as e:
                logger.warning(
                    "probe_failed",
                    rule_id=rule.id,
                    database=unit.database,
                    target=unit.target,
                    error=str(e),
                )
                message = str(e)
                evidence = e.evidence
            except Exception as e:
                logger.error(
                    "probe_execution_failed",
                    rule_id=rule.id,
                    database=unit.database,
                    target=unit.target,
                    error=str(e),
                )
                message = f"Probe failed with error: {e}"

        return evidence, ProbeFailure(
            rule_id=rule.id,
            database_name=self._attributed_database(rule, unit),
            target=unit.target,
            message=message,
        )

    @staticmethod
    def _attributed_database(rule: Rule, unit: ScopeUnit) -> str | None:
        return None if rule.scope == Scope.CLUSTER else unit.database

    def _to_finding(self, rule: Rule, unit: ScopeUnit, evidence: Evidence) -> Finding:
        database = self._attributed_database(rule, unit)
        summary = evidence.summary if database is None else f"[{unit.label}] {evidence.summary}"
        return Finding(
            rule_id=rule.id,
            database_name=database,
            target=unit.target,
            severity=evidence.severity or rule.default_severity,
            summary=summary,
            detail_rows=evidence.rows,
        )
