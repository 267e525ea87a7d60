"""Custom exceptions for pgprecheck."""

from typing import Any


class PrecheckError(Exception):
    """Base exception for all pgprecheck errors."""


class ConfigurationError(PrecheckError):
    """Configuration-related errors."""


class InputValidationError(PrecheckError):
    """Malformed connection arguments or an unsupported version pair."""


class ConnectivityError(PrecheckError):
    """The database could not be reached for version detection or enumeration."""


class ProbeError(PrecheckError):
    """A single probe call failed after the session started.

    Attributes:
        database: Database the probe ran against, if any
        evidence: Evidence gathered before the failure, still worth reporting
    """

    def __init__(
        self, message: str, database: str | None = None, evidence: list[Any] | None = None
    ):
        """Initialize probe error.

        Args:
            message: Error message
            database: Database the probe ran against
            evidence: Partial evidence from the same probe
        """
        super().__init__(message)
        self.database = database
        self.evidence = evidence or []


class SessionSealedError(PrecheckError):
    """An outcome was accumulated into a session that is already sealed."""
