"""Ordered catalog of precheck rules."""

from collections.abc import Iterable, Iterator

from pgprecheck.core.models import Section
from pgprecheck.rules.aurora_rds import AURORA_RDS_RULES
from pgprecheck.rules.blue_green import BLUE_GREEN_RULES
from pgprecheck.rules.engine_internal import ENGINE_INTERNAL_RULES
from pgprecheck.rules.rule import Rule
from pgprecheck.utils.logging import get_logger

logger = get_logger(__name__)


class RuleCatalog:
    """Fixed, ordered collection of rules.

    Catalog order is the canonical report order. Rule ids are unique; a
    duplicate id is a build-time defect and raises immediately.
    """

    def __init__(self, rules: Iterable[Rule]):
        """Initialize rule catalog.

        Args:
            rules: Rules in report order

        Raises:
            ValueError: If two rules share an id
        """
        self._rules: tuple[Rule, ...] = tuple(rules)
        self._rules_by_id: dict[str, Rule] = {}
        for rule in self._rules:
            if rule.id in self._rules_by_id:
                raise ValueError(f"Duplicate rule id in catalog: {rule.id}")
            self._rules_by_id[rule.id] = rule
        logger.debug("rule_catalog_initialized", rule_count=len(self._rules))

    def get_rule(self, rule_id: str) -> Rule | None:
        """Get a rule by id.

        Args:
            rule_id: Rule identifier

        Returns:
            Rule if found, None otherwise
        """
        return self._rules_by_id.get(rule_id)

    def get_rules_for_section(self, section: Section) -> list[Rule]:
        """Get the rules of one section, in catalog order."""
        return [rule for rule in self._rules if rule.section == section]

    @property
    def rule_ids(self) -> list[str]:
        """Rule ids in catalog order."""
        return [rule.id for rule in self._rules]

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        """Get number of rules."""
        return len(self._rules)


def default_catalog() -> RuleCatalog:
    """Build the built-in catalog: Aurora/RDS, engine-internal, then Blue/Green."""
    return RuleCatalog((*AURORA_RDS_RULES, *ENGINE_INTERNAL_RULES, *BLUE_GREEN_RULES))
