"""Version gate deciding whether a rule applies to an upgrade path."""

from dataclasses import dataclass

from pgprecheck.core.models import Section
from pgprecheck.rules.rule import Rule, VersionContext
from pgprecheck.utils.logging import get_logger

logger = get_logger(__name__)

BLUE_GREEN_NOT_REQUESTED = "Blue/Green checks not requested"


@dataclass(frozen=True)
class GateDecision:
    """Applicability verdict for one rule."""

    applicable: bool
    reason: str | None = None


class VersionGate:
    """Pure, total applicability check.

    A rule applies when its own predicate holds for (source, target,
    blue/green) and, for Blue/Green rules, Blue/Green checks were
    requested. The gate never raises and never consults probe results.
    """

    def evaluate(
        self,
        rule: Rule,
        source_version: int,
        target_version: int,
        blue_green_requested: bool,
    ) -> GateDecision:
        """Decide whether a rule applies.

        Args:
            rule: Rule to evaluate
            source_version: Source major version
            target_version: Target major version
            blue_green_requested: Whether Blue/Green checks were requested

        Returns:
            GateDecision, with a skip reason when not applicable
        """
        if rule.section == Section.BLUE_GREEN and not blue_green_requested:
            return GateDecision(applicable=False, reason=BLUE_GREEN_NOT_REQUESTED)

        context = VersionContext(
            source_version=source_version,
            target_version=target_version,
            blue_green_requested=blue_green_requested,
        )
        try:
            applies = bool(rule.applicability(context))
        except Exception as e:
            logger.error("applicability_evaluation_failed", rule_id=rule.id, error=str(e))
            return GateDecision(
                applicable=False, reason=f"applicability could not be evaluated: {e}"
            )

        if applies:
            return GateDecision(applicable=True)
        return GateDecision(applicable=False, reason=rule.applicability.skip_reason)
