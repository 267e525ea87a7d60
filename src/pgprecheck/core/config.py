"""Configuration management for pgprecheck."""

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from pgprecheck.core.exceptions import ConfigurationError

CONFIG_ENV_VAR = "PGPRECHECK_CONFIG"
DEFAULT_CONFIG_PATH = "~/.pgprecheck/config.yaml"


class ConnectionConfig(BaseModel):
    """Database connection configuration."""

    maintenance_database: str = "postgres"
    ssl: str = "require"
    connect_timeout_seconds: float = 10.0
    probe_timeout_seconds: float = 30.0
    connect_retries: int = 3


class ExecutionConfig(BaseModel):
    """Execution configuration."""

    max_concurrent_probes: int = Field(default=8, ge=1)


class EnumerationConfig(BaseModel):
    """Database enumeration configuration."""

    # Skipped in addition to template0, template1 and rdsadmin.
    excluded_databases: list[str] = Field(default_factory=list)


class ReportConfig(BaseModel):
    """Report output configuration."""

    format: Literal["text", "json"] = "text"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "WARNING"
    format: str = "console"
    output: str = "stderr"


class PrecheckConfig(BaseModel):
    """Main pgprecheck configuration."""

    connection: ConnectionConfig = Field(default_factory=ConnectionConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    enumeration: EnumerationConfig = Field(default_factory=EnumerationConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, path: str | Path) -> "PrecheckConfig":
        """Load configuration from YAML file.

        Args:
            path: Path to configuration file

        Returns:
            PrecheckConfig instance

        Raises:
            ConfigurationError: If file cannot be loaded or parsed
        """
        config_path = Path(path).expanduser()
        if not config_path.is_file():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            data = yaml.safe_load(config_path.read_text()) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load configuration {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Invalid configuration: {config_path} must contain a mapping at the top level"
            )

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e


def load_config() -> PrecheckConfig:
    """Load configuration from the environment or the default location.

    An explicit ``PGPRECHECK_CONFIG`` path must exist; the default path is
    optional and falls back to built-in defaults.

    Returns:
        PrecheckConfig instance

    Raises:
        ConfigurationError: If the configured file is missing or invalid
    """
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        return PrecheckConfig.from_file(explicit)

    default_path = Path(DEFAULT_CONFIG_PATH).expanduser()
    if default_path.exists():
        return PrecheckConfig.from_file(default_path)

    return PrecheckConfig()
