"""Applicability predicates over source/target major versions."""

from pgprecheck.rules.rule import Applicability, VersionContext

ALWAYS = Applicability(
    predicate=lambda ctx: True,
    skip_reason="",
    description="all upgrade paths",
)


def source_at_most(version: int) -> Applicability:
    """Applies when the source major version is <= version."""
    return Applicability(
        predicate=lambda ctx: ctx.source_version <= version,
        skip_reason=f"source version > {version}",
        description=f"source <= {version}",
    )


def source_below(version: int, reason: str | None = None) -> Applicability:
    """Applies when the source major version is < version."""
    return Applicability(
        predicate=lambda ctx: ctx.source_version < version,
        skip_reason=reason or f"source version >= {version}",
        description=f"source < {version}",
    )


def target_at_least(version: int) -> Applicability:
    """Applies when the target major version is >= version."""
    return Applicability(
        predicate=lambda ctx: ctx.target_version >= version,
        skip_reason=f"target version < {version}",
        description=f"target >= {version}",
    )


def all_of(*conditions: Applicability, reason: str | None = None) -> Applicability:
    """Applies when every condition applies."""

    def predicate(ctx: VersionContext) -> bool:
        return all(condition(ctx) for condition in conditions)

    return Applicability(
        predicate=predicate,
        skip_reason=reason or "; ".join(c.skip_reason for c in conditions),
        description=" and ".join(c.description for c in conditions),
    )
