"""
Configuration loading and validation.

Settings live in an ``ordeal.yaml`` file next to the project (or in any
parent directory). Every field has a default, so no file is required.
"""

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from ordeal.errors import ConfigError

CONFIG_FILENAME = "ordeal.yaml"

DEFAULT_CONFIG = """\
# Ordeal Configuration
version: "1.0"

# Logging: DEBUG, INFO, WARNING, ERROR
log_level: WARNING
color: true

# Run tests and suites as soon as they are defined
run_on_define: false

# Reporting: console, json, yaml
report_format: console
show_values: true
capture_tracebacks: true
"""


class OrdealConfig(BaseModel):
    """Runtime configuration."""

    model_config = {"extra": "forbid"}

    version: str = Field(default="1.0", description="Config file format version")
    log_level: str = Field(default="WARNING", description="Level for the ordeal logger")
    color: bool = Field(default=True, description="Colored console output")
    run_on_define: bool = Field(
        default=False, description="Default run flag for new tests and suites"
    )
    report_format: Literal["console", "json", "yaml"] = Field(default="console")
    show_values: bool = Field(default=True, description="Show failure values in reports")
    capture_tracebacks: bool = Field(
        default=True, description="Store tracebacks for unexpected errors"
    )

    @field_validator("log_level")
    @classmethod
    def level_is_known(cls, v: str) -> str:
        """Validate and normalize the log level name."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level


class ConfigLoader:
    """Load OrdealConfig from YAML files or dictionaries."""

    @classmethod
    def default(cls) -> OrdealConfig:
        return OrdealConfig()

    @classmethod
    def from_yaml(cls, path: str | Path) -> OrdealConfig:
        """
        Load configuration from a YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            OrdealConfig loaded from file

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigError: If the content is not valid configuration.
        """
        path = Path(path)
        if not path.exists():
            msg = f"Configuration file not found: {path}"
            raise FileNotFoundError(msg)

        with path.open() as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OrdealConfig:
        """
        Create configuration from a dictionary.

        Raises:
            ConfigError: If the dictionary is not valid configuration.
        """
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration must be a mapping, got {type(data).__name__}")
        try:
            return OrdealConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigError(str(e)) from e

    @classmethod
    def discover(cls, start: str | Path | None = None) -> OrdealConfig:
        """Load the nearest ``ordeal.yaml`` at or above ``start``; defaults if none."""
        directory = Path(start or Path.cwd()).resolve()
        if directory.is_file():
            directory = directory.parent
        for candidate in (directory, *directory.parents):
            config_file = candidate / CONFIG_FILENAME
            if config_file.is_file():
                return cls.from_yaml(config_file)
        return cls.default()
