"""Interface definitions for external collaborators."""

from pgprecheck.interfaces.probe_client import ProbeClient, ProbeId, Row

__all__ = [
    "ProbeClient",
    "ProbeId",
    "Row",
]
