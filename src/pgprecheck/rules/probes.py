"""Reusable probe builders.

Each builder returns a coroutine function that runs one fixed probe for a
scope unit and turns a non-empty result into Evidence. An empty or zero
result yields no evidence.
"""

from typing import Any

from pgprecheck.core.exceptions import ProbeError
from pgprecheck.interfaces.probe_client import ProbeId, Row
from pgprecheck.rules.rule import Evidence, Probe, ProbeContext, ScopeUnit


def _parse_int(value: str | None, what: str, database: str | None = None) -> int:
    if value is None or value == "":
        return 0
    try:
        return int(value)
    except ValueError as e:
        raise ProbeError(f"Unexpected non-integer {what}: {value!r}", database=database) from e


def _bind_args(unit: ScopeUnit, args: tuple[Any, ...], target_param: str | None) -> tuple[Any, ...]:
    if target_param is None or unit.target is None:
        return args
    return (*args, target_param.format(target=unit.target))


def rows_present(
    probe_id: ProbeId,
    summary: str,
    *args: Any,
    target_param: str | None = None,
) -> Probe:
    """Evidence when a rows probe returns anything.

    Args:
        probe_id: Probe to run
        summary: Summary template; formatted with ``target``, ``count`` and the first
            row's columns
        *args: Fixed bind parameters
        target_param: Template for an extra bind parameter built from the
            unit's target (e.g. "pg_catalog.{target}")

    Returns:
        Probe coroutine function
    """

    async def probe(ctx: ProbeContext, unit: ScopeUnit) -> list[Evidence]:
        rows = await ctx.client.rows_query(
            unit.database, probe_id, *_bind_args(unit, args, target_param)
        )
        if not rows:
            return []
        text = summary.format(target=unit.target, count=len(rows), **rows[0])
        return [Evidence(summary=text, rows=rows)]

    return probe


def count_positive(
    count_probe: ProbeId,
    summary: str,
    detail_probe: ProbeId | None = None,
) -> Probe:
    """Evidence when a count probe returns a positive number.

    Args:
        count_probe: Scalar probe returning a count
        summary: Summary template formatted with ``count``
        detail_probe: Rows probe fetched as evidence when the count is positive

    Returns:
        Probe coroutine function
    """

    async def probe(ctx: ProbeContext, unit: ScopeUnit) -> list[Evidence]:
        value = await ctx.client.scalar_query(unit.database, count_probe)
        count = _parse_int(value, count_probe.value, unit.database)
        if count <= 0:
            return []
        rows: list[Row] = []
        if detail_probe is not None:
            rows = await ctx.client.rows_query(unit.database, detail_probe)
        return [Evidence(summary=summary.format(count=count), rows=rows)]

    return probe


def count_equals(probe_id: ProbeId, expected: int, summary: str) -> Probe:
    """Evidence when a count probe differs from an exact expected value."""

    async def probe(ctx: ProbeContext, unit: ScopeUnit) -> list[Evidence]:
        value = await ctx.client.scalar_query(unit.database, probe_id)
        count = _parse_int(value, probe_id.value, unit.database)
        if count == expected:
            return []
        return [
            Evidence(
                summary=summary.format(count=count, expected=expected),
                rows=[{"count": count, "expected": expected}],
            )
        ]

    return probe


def setting_equals(name: str, expected: str, summary: str) -> Probe:
    """Evidence when a server setting is not exactly the expected value."""

    async def probe(ctx: ProbeContext, unit: ScopeUnit) -> list[Evidence]:
        value = await ctx.client.show_setting(name)
        if value == expected:
            return []
        return [
            Evidence(
                summary=summary.format(current=value or "unknown"),
                rows=[{"setting": name, "current": value, "expected": expected}],
            )
        ]

    return probe
