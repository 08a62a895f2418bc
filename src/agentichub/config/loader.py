"""
Configuration loading and validation for AgenticHub.

This module loads settings from TOML files with environment variable
substitution, validates them against the settings schema and configures
logging from the ``[logging]`` section.
"""

import logging
import os
import re
import sys
from pathlib import Path
from typing import Any

import toml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import ConfigurationError
from ..http import DEFAULT_TIMEOUT, DEFAULT_USER_AGENT
from ..metadata.client import DEFAULT_METADATA_URL
from ..registry.models import DEFAULT_REGISTRIES
from ..skills.client import SKILL_PROVIDERS, SkillsClient

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
VALID_LOG_FORMATS = ["structured", "plain"]


class HttpSettings(BaseModel):
    """Settings shared by every remote client."""

    model_config = ConfigDict(extra="allow")

    timeout: float = DEFAULT_TIMEOUT
    user_agent: str = DEFAULT_USER_AGENT


class RegistrySettings(BaseModel):
    """Registry selection and paging."""

    model_config = ConfigDict(extra="allow")

    active: str = DEFAULT_REGISTRIES[0].id
    page_size: int = Field(100, ge=1)


class MetadataSettings(BaseModel):
    """Repository statistics endpoint."""

    model_config = ConfigDict(extra="allow")

    enabled: bool = True
    url: str = DEFAULT_METADATA_URL
    page_size: int = Field(100, ge=1)


class SkillsSettings(BaseModel):
    """Skill catalog providers."""

    model_config = ConfigDict(extra="allow")

    enabled: bool = True
    provider: str = "skills.sh"
    base_url: str | None = None
    limit: int = Field(SkillsClient.DEFAULT_LIMIT, ge=1)
    seed_queries: list[str] | None = None


class ClientsSettings(BaseModel):
    """Where client configuration files and app bundles are looked up."""

    model_config = ConfigDict(extra="allow")

    home: str | None = None
    applications_dir: str = "/Applications"


class LoggingSettings(BaseModel):
    """Logging level, format and optional log file."""

    model_config = ConfigDict(extra="allow")

    level: str = "INFO"
    format: str = "structured"
    file: str | None = None


class HubSettings(BaseModel):
    """Complete AgenticHub configuration schema."""

    model_config = ConfigDict(extra="allow")

    version: str = "1.0.0"
    http: HttpSettings = Field(default_factory=HttpSettings)
    registry: RegistrySettings = Field(default_factory=RegistrySettings)
    metadata: MetadataSettings = Field(default_factory=MetadataSettings)
    skills: SkillsSettings = Field(default_factory=SkillsSettings)
    clients: ClientsSettings = Field(default_factory=ClientsSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


class ConfigLoader:
    """Configuration loader with environment variable substitution."""

    def __init__(self) -> None:
        """Initialize configuration loader."""
        self.env_var_pattern = re.compile(r"\$\{([^}]+)\}")

    def load_from_file(self, config_path: str | Path) -> dict[str, Any]:
        """
        Load configuration from TOML file.

        Args:
            config_path: Path to configuration file

        Returns:
            Configuration dictionary with environment variable substitution

        Raises:
            ConfigurationError: If configuration cannot be loaded or is invalid
        """
        try:
            config_path = Path(config_path).expanduser().resolve()

            if not config_path.exists():
                raise ConfigurationError(f"Configuration file not found: {config_path}")

            logger.info(f"Loading configuration from {config_path}")

            with open(config_path) as f:
                config_data = toml.load(f)

            return self.load_from_dict(config_data)

        except toml.TomlDecodeError as e:
            raise ConfigurationError(f"Invalid TOML syntax: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Error reading configuration file: {e}") from e

    def load_defaults(self) -> dict[str, Any]:
        """
        Load default configuration.

        Returns:
            Default configuration dictionary
        """
        return HubSettings().model_dump()

    def load_from_dict(self, config_dict: dict[str, Any]) -> dict[str, Any]:
        """
        Load configuration from dictionary.

        Args:
            config_dict: Configuration dictionary

        Returns:
            Processed configuration with environment variable substitution

        Raises:
            ConfigurationError: If configuration is invalid
        """
        config_data = self._substitute_env_vars(config_dict)

        errors = self.validate_config(config_data)
        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}"
            )

        return config_data

    def load_settings(self, config_path: str | Path | None = None) -> HubSettings:
        """
        Load validated settings.

        Args:
            config_path: Configuration file; defaults apply when omitted

        Returns:
            HubSettings instance
        """
        if config_path is None:
            return HubSettings()
        config_data = self.merge_configs(
            self.load_defaults(), self.load_from_file(config_path)
        )
        return HubSettings(**config_data)

    def validate_config(self, config_data: dict[str, Any]) -> list[str]:
        """
        Validate configuration against schema.

        Args:
            config_data: Configuration to validate

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        try:
            HubSettings(**config_data)
        except ValidationError as e:
            for error in e.errors():
                field_path = ".".join(str(x) for x in error["loc"])
                errors.append(f"{field_path}: {error['msg']}")

        errors.extend(self._validate_registry_config(config_data.get("registry", {})))
        errors.extend(self._validate_skills_config(config_data.get("skills", {})))
        errors.extend(self._validate_logging_config(config_data.get("logging", {})))

        return errors

    def _substitute_env_vars(self, obj: Any) -> Any:
        """
        Recursively substitute environment variables in configuration.

        Args:
            obj: Configuration object (dict, list, or primitive)

        Returns:
            Object with environment variables substituted
        """
        if isinstance(obj, dict):
            return {key: self._substitute_env_vars(value) for key, value in obj.items()}
        elif isinstance(obj, list):
            return [self._substitute_env_vars(item) for item in obj]
        elif isinstance(obj, str):
            return self._substitute_env_vars_in_string(obj)
        else:
            return obj

    def _substitute_env_vars_in_string(self, text: str) -> str:
        """
        Substitute environment variables in a string.

        Supports formats:
        - ${VAR} - Required variable (raises error if not found)
        - ${VAR:-default} - Variable with default value
        - ${VAR:default} - Variable with default value (alternative syntax)

        Args:
            text: String potentially containing environment variable references

        Returns:
            String with environment variables substituted

        Raises:
            ConfigurationError: If required environment variable is missing
        """

        def replace_var(match):
            var_expr = match.group(1)

            if ":-" in var_expr:
                var_name, default_value = var_expr.split(":-", 1)
            elif ":" in var_expr and not var_expr.startswith(":"):
                var_name, default_value = var_expr.split(":", 1)
            else:
                var_name = var_expr
                default_value = None

            env_value = os.environ.get(var_name.strip())

            if env_value is not None:
                return env_value
            elif default_value is not None:
                return default_value
            else:
                raise ConfigurationError(
                    f"Required environment variable not found: {var_name}"
                )

        return self.env_var_pattern.sub(replace_var, text)

    def _validate_registry_config(self, registry: dict[str, Any]) -> list[str]:
        """Validate registry selection."""
        errors = []
        if not isinstance(registry, dict):
            return errors

        active = registry.get("active")
        valid_ids = [descriptor.id for descriptor in DEFAULT_REGISTRIES]
        if active is not None and active not in valid_ids:
            errors.append(f"registry.active: must be one of {valid_ids}")

        return errors

    def _validate_skills_config(self, skills: dict[str, Any]) -> list[str]:
        """Validate skill provider selection."""
        errors = []
        if not isinstance(skills, dict):
            return errors

        provider = skills.get("provider", "skills.sh")
        valid_providers = list(SKILL_PROVIDERS)
        if provider not in valid_providers:
            errors.append(f"skills.provider: must be one of {valid_providers}")

        return errors

    def _validate_logging_config(self, logging_config: dict[str, Any]) -> list[str]:
        """Validate logging configuration."""
        errors = []
        if not isinstance(logging_config, dict):
            return errors

        level = str(logging_config.get("level", "INFO")).upper()
        if level not in VALID_LOG_LEVELS:
            errors.append(f"logging.level: must be one of {VALID_LOG_LEVELS}")

        log_format = logging_config.get("format", "structured")
        if log_format not in VALID_LOG_FORMATS:
            errors.append(f"logging.format: must be one of {VALID_LOG_FORMATS}")

        return errors

    def save_config(self, config_data: dict[str, Any], config_path: str | Path) -> None:
        """
        Save configuration to TOML file.

        Args:
            config_data: Configuration to save
            config_path: Path to save configuration file

        Raises:
            ConfigurationError: If configuration cannot be saved
        """
        try:
            config_path = Path(config_path).expanduser().resolve()
            config_path.parent.mkdir(parents=True, exist_ok=True)

            errors = self.validate_config(config_data)
            if errors:
                raise ConfigurationError(
                    f"Cannot save invalid configuration: {'; '.join(errors)}"
                )

            with open(config_path, "w") as f:
                toml.dump(config_data, f)

            logger.info(f"Configuration saved to {config_path}")

        except OSError as e:
            raise ConfigurationError(f"Error saving configuration file: {e}") from e

    def merge_configs(
        self, base_config: dict[str, Any], override_config: dict[str, Any]
    ) -> dict[str, Any]:
        """
        Merge two configuration dictionaries.

        Args:
            base_config: Base configuration
            override_config: Override configuration

        Returns:
            Merged configuration
        """
        merged = base_config.copy()

        for key, value in override_config.items():
            if (
                key in merged
                and isinstance(merged[key], dict)
                and isinstance(value, dict)
            ):
                merged[key] = self.merge_configs(merged[key], value)
            else:
                merged[key] = value

        return merged

    def get_default_config_path(self) -> Path:
        """
        Get default configuration file path.

        Returns:
            Default configuration path
        """
        return Path.home() / ".agentichub" / "config.toml"

    def create_example_config(self, config_path: str | Path) -> None:
        """
        Create example configuration file.

        Args:
            config_path: Path to create example configuration

        Raises:
            ConfigurationError: If example configuration cannot be created
        """
        example_config = {
            "version": "1.0.0",
            "http": {"timeout": DEFAULT_TIMEOUT, "user_agent": DEFAULT_USER_AGENT},
            "registry": {"active": DEFAULT_REGISTRIES[0].id, "page_size": 100},
            "metadata": {
                "enabled": True,
                "url": "${AGENTICHUB_METADATA_URL:-" + DEFAULT_METADATA_URL + "}",
                "page_size": 100,
            },
            "skills": {
                "enabled": True,
                "provider": "skills.sh",
                "limit": SkillsClient.DEFAULT_LIMIT,
            },
            "clients": {"applications_dir": "/Applications"},
            "logging": {"level": "INFO", "format": "structured"},
        }

        self.save_config(example_config, config_path)


def configure_logging(settings: LoggingSettings, verbose: bool = False) -> None:
    """
    Configure the root logger from the logging settings.

    Args:
        settings: Logging section of the configuration
        verbose: Force DEBUG level
    """
    level = logging.DEBUG if verbose else getattr(logging, settings.level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if settings.format == "structured":
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
    else:
        formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if settings.file:
        file_handler = logging.FileHandler(Path(settings.file).expanduser())
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
