"""Validation of operator-supplied connection arguments."""

import re

from pydantic import BaseModel, ValidationError, field_validator

from pgprecheck.core.exceptions import InputValidationError

SUPPORTED_TARGET_VERSIONS = (11, 12, 13, 14, 15, 16, 17)

_HOST_PATTERN = re.compile(r"[a-zA-Z0-9._-]+")
_USER_PATTERN = re.compile(r"[a-zA-Z0-9_-]+")
_DIGITS_PATTERN = re.compile(r"[0-9]+")


class ConnectionTarget(BaseModel):
    """Validated host, port, user and target major version."""

    host: str
    port: int
    user: str
    target_version: int

    @field_validator("host")
    @classmethod
    def validate_host(cls, value: str) -> str:
        """Reject hostnames outside the conservative allowlist."""
        if len(value) > 253 or not _HOST_PATTERN.fullmatch(value):
            raise ValueError("Invalid hostname format")
        return value

    @field_validator("port", mode="before")
    @classmethod
    def validate_port(cls, value: object) -> int:
        """Accept only decimal port numbers in 1..65535."""
        text = str(value)
        if len(text) > 5 or not _DIGITS_PATTERN.fullmatch(text) or not 1 <= int(text) <= 65535:
            raise ValueError("Invalid port number (must be 1-65535)")
        return int(text)

    @field_validator("user")
    @classmethod
    def validate_user(cls, value: str) -> str:
        """Reject usernames outside the conservative allowlist."""
        if len(value) > 63 or not _USER_PATTERN.fullmatch(value):
            raise ValueError("Invalid username format")
        return value

    @field_validator("target_version", mode="before")
    @classmethod
    def validate_target_version(cls, value: object) -> int:
        """Restrict the target to the supported major versions."""
        text = str(value)
        if not _DIGITS_PATTERN.fullmatch(text) or int(text) not in SUPPORTED_TARGET_VERSIONS:
            supported = ", ".join(str(v) for v in SUPPORTED_TARGET_VERSIONS)
            raise ValueError(f"Invalid target version '{text}' (supported: {supported})")
        return int(text)


def validate_connection_args(
    host: str, port: str | int, user: str, target_version: str | int
) -> ConnectionTarget:
    """Validate positional CLI arguments.

    Args:
        host: Database endpoint
        port: Database port
        user: Database user
        target_version: Target major version

    Returns:
        Validated ConnectionTarget

    Raises:
        InputValidationError: If any argument is malformed
    """
    try:
        return ConnectionTarget(
            host=host, port=port, user=user, target_version=target_version
        )
    except ValidationError as e:
        messages = "; ".join(str(err["msg"]).removeprefix("Value error, ") for err in e.errors())
        raise InputValidationError(messages) from e


def validate_upgrade_path(source_version: int, target_version: int) -> None:
    """Ensure the upgrade crosses to a strictly higher major version.

    Raises:
        InputValidationError: If source >= target
    """
    if source_version >= target_version:
        raise InputValidationError(
            f"Source version ({source_version}) >= Target version ({target_version})"
        )
