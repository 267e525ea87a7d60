"""Enumeration of the databases a session probes."""

import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from pgprecheck.utils.logging import get_logger

logger = get_logger(__name__)

SYSTEM_DATABASES = frozenset({"template0", "template1", "rdsadmin"})

# Names outside this allowlist never reach a probe.
IDENTIFIER_PATTERN = re.compile(r"[a-zA-Z0-9_-]+")


@dataclass(frozen=True)
class EnumerationResult:
    """Validated databases plus the names that were rejected."""

    databases: tuple[str, ...]
    rejected: tuple[str, ...] = field(default_factory=tuple)


class DatabaseEnumerator:
    """Filter raw database names down to the ordered set that is safe to probe."""

    def __init__(self, excluded: Iterable[str] = ()):
        """Initialize database enumerator.

        Args:
            excluded: Extra database names to skip, on top of SYSTEM_DATABASES
        """
        self.excluded = SYSTEM_DATABASES | frozenset(excluded)

    def enumerate(self, raw_names: Iterable[str]) -> EnumerationResult:
        """Validate, deduplicate and sort database names.

        System databases are dropped silently. Names failing the identifier
        allowlist are dropped and reported back so they can be surfaced as
        warnings.

        Args:
            raw_names: Names returned by the list-databases probe

        Returns:
            EnumerationResult with lexicographically ordered databases
        """
        valid: set[str] = set()
        rejected: set[str] = set()

        for name in raw_names:
            if name in self.excluded:
                continue
            if IDENTIFIER_PATTERN.fullmatch(name):
                valid.add(name)
            else:
                logger.warning("skipping_invalid_database_name", database=name)
                rejected.add(name)

        result = EnumerationResult(
            databases=tuple(sorted(valid)),
            rejected=tuple(sorted(rejected)),
        )
        logger.debug(
            "databases_enumerated",
            database_count=len(result.databases),
            rejected_count=len(result.rejected),
        )
        return result
