"""Aggregation of rule outcomes into a session."""

from pgprecheck.core.exceptions import SessionSealedError
from pgprecheck.core.models import PrecheckSession, RuleOutcome, RuleStatus, utc_now
from pgprecheck.utils.logging import get_logger

logger = get_logger(__name__)


class ResultAggregator:
    """Single-threaded reducer of outcomes into the session counters.

    Accumulation happens in catalog order after all probes finish, so the
    session is the only mutable shared state and it has a single writer.
    """

    def accumulate(self, session: PrecheckSession, outcome: RuleOutcome) -> None:
        """Fold one outcome into the session.

        Args:
            session: Open session
            outcome: Outcome of one rule

        Raises:
            SessionSealedError: If the session is already sealed
        """
        if session.sealed:
            raise SessionSealedError(f"Cannot accumulate {outcome.rule_id} into a sealed session")

        session.outcomes.append(outcome)

        errors = outcome.error_count
        warnings = outcome.warning_count
        session.error_count += errors
        session.warning_count += warnings

        if errors and outcome.rule_id not in session.failed_rule_ids:
            session.failed_rule_ids.append(outcome.rule_id)
        if warnings and outcome.rule_id not in session.warned_rule_ids:
            session.warned_rule_ids.append(outcome.rule_id)
        if outcome.probe_errors and outcome.rule_id not in session.unverified_rule_ids:
            session.unverified_rule_ids.append(outcome.rule_id)

        if outcome.status in (RuleStatus.FAILED, RuleStatus.WARNED, RuleStatus.UNVERIFIED):
            logger.info(
                "outcome_accumulated",
                rule_id=outcome.rule_id,
                status=outcome.status.value,
                errors=errors,
                warnings=warnings,
            )

    def seal(self, session: PrecheckSession) -> PrecheckSession:
        """Freeze the session once the catalog is exhausted.

        Returns:
            The same session, with finished_at set
        """
        if session.sealed:
            raise SessionSealedError("Session is already sealed")
        session.finished_at = utc_now()
        logger.info(
            "session_sealed",
            errors=session.error_count,
            warnings=session.warning_count,
            failed_rules=len(session.failed_rule_ids),
            warned_rules=len(session.warned_rule_ids),
            unverified_rules=len(session.unverified_rule_ids),
        )
        return session
