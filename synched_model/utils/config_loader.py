"""Configuration loader for the sync engine."""

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
import yaml
from pydantic import ValidationError

from synched_model.models.config import SyncConfig

log = structlog.stdlib.get_logger()


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""

    pass


class ConfigLoader:
    """Loads and validates sync configuration from YAML files and environment variables."""

    def __init__(self, config_dir: Optional[Path] = None) -> None:
        """Initialize the ConfigLoader.

        Args:
            config_dir: Directory holding <env>.yaml files. Defaults to the
                repository's config/ directory.
        """
        self.env_var_pattern = re.compile(r"\$\{([^}]+)\}")
        self.config_dir = config_dir or Path(__file__).parent.parent.parent / "config"

    def load_config(self, config_path: Optional[str] = None) -> SyncConfig:
        """Load configuration from a YAML file with environment variable substitution.

        Args:
            config_path: Path to the configuration YAML file. If None, uses
                <SYNCHED_MODEL_ENV>.yaml, falling back to default.yaml

        Returns:
            SyncConfig: Validated configuration

        Raises:
            ConfigurationError: If the file is missing, unreadable or invalid
        """
        if config_path is None:
            config_path = self._get_default_config_path()

        log.info("loading_configuration", config_path=config_path)

        config_dict = self._load_yaml_file(config_path)
        config_dict = self._substitute_env_vars(config_dict)

        try:
            sync_config = SyncConfig(**config_dict)
            log.info("configuration_loaded_successfully")
            return sync_config
        except ValidationError as e:
            log.error("configuration_validation_failed", error=str(e))
            raise ConfigurationError(f"Configuration validation failed: {e}") from e

    def _get_default_config_path(self) -> str:
        env = os.getenv("SYNCHED_MODEL_ENV", "default")
        config_file = self.config_dir / f"{env}.yaml"

        if not config_file.exists():
            config_file = self.config_dir / "default.yaml"

        if not config_file.exists():
            raise ConfigurationError(
                f"Configuration file not found: {config_file}. "
                f"Please create config/default.yaml or set SYNCHED_MODEL_ENV to a valid environment."
            )

        return str(config_file)

    def _load_yaml_file(self, config_path: str) -> Dict[str, Any]:
        try:
            with open(config_path, "r") as f:
                config_dict = yaml.safe_load(f)
        except FileNotFoundError as e:
            raise ConfigurationError(f"Configuration file not found: {config_path}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML file {config_path}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to load configuration file {config_path}: {e}") from e

        if config_dict is None:
            raise ConfigurationError(f"Configuration file is empty: {config_path}")
        if not isinstance(config_dict, dict):
            raise ConfigurationError(f"Configuration file must contain a mapping: {config_path}")

        log.debug("yaml_file_loaded", config_path=config_path)
        return config_dict

    def _substitute_env_vars(self, config: Any) -> Any:
        """Recursively substitute ${VAR_NAME} references with environment values."""
        if isinstance(config, dict):
            return {key: self._substitute_env_vars(value) for key, value in config.items()}
        elif isinstance(config, list):
            return [self._substitute_env_vars(item) for item in config]
        elif isinstance(config, str):
            return self._substitute_env_var_in_string(config)
        else:
            return config

    def _substitute_env_var_in_string(self, value: str) -> str:
        matches = self.env_var_pattern.findall(value)

        for var_name in matches:
            env_value = os.getenv(var_name)
            if env_value is None:
                raise ConfigurationError(
                    f"Required environment variable not set: {var_name}. "
                    f"Please set {var_name} in your environment or .env file."
                )
            value = value.replace(f"${{{var_name}}}", env_value)

        return value

    def validate_config(self, config: SyncConfig) -> list[str]:
        """Validate configuration and return any warnings.

        Pydantic rejects invalid values; this only flags settings that are
        valid but likely to misbehave.

        Args:
            config: Configuration to validate

        Returns:
            List of warning messages (empty if no warnings)
        """
        warnings = []
        retry = config.retry

        # A cap hit before the last attempt flattens the backoff curve
        if retry.max_delay is not None and retry.max_attempts > 1:
            last_delay = retry.base_delay * retry.factor ** (retry.max_attempts - 2)
            if last_delay > retry.max_delay:
                warnings.append(
                    f"retry.max_delay ({retry.max_delay}) is reached before the last attempt; "
                    f"later delays will not increase"
                )

        if retry.max_attempts == 1:
            warnings.append("retry.max_attempts is 1; failed fetches will never be retried")

        if warnings:
            log.warning("configuration_validation_warnings", warnings=warnings)

        return warnings
