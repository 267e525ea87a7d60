"""Version-gated compatibility rules."""

from pgprecheck.rules.catalog import RuleCatalog, default_catalog
from pgprecheck.rules.gate import GateDecision, VersionGate
from pgprecheck.rules.rule import (
    Applicability,
    Evidence,
    Probe,
    ProbeContext,
    Rule,
    ScopeUnit,
    VersionContext,
)

__all__ = [
    "Applicability",
    "Evidence",
    "GateDecision",
    "Probe",
    "ProbeContext",
    "Rule",
    "RuleCatalog",
    "ScopeUnit",
    "VersionContext",
    "VersionGate",
    "default_catalog",
]
