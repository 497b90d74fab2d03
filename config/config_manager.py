"""Configuration manager for the multi-timer engine.

Loads ``config.yaml`` with environment variable substitution and validates it
against the MultiTimerConfig schema.
"""

import logging
import os
import re
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from config.multitimer_config import MultiTimerConfig

logger = logging.getLogger(__name__)

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)\}")


def _replace_env_var(match: re.Match) -> str:
    var_spec = match.group(1)
    if ":" in var_spec:
        var_name, default_value = var_spec.split(":", 1)
    else:
        var_name, default_value = var_spec, ""
    return os.getenv(var_name, default_value)


class ConfigValidationError(Exception):
    """Raised when configuration loading or validation fails."""

    def __init__(self, message: str, path: str = ""):
        self.message = message
        self.path = path
        super().__init__(f"Configuration validation error at '{path}': {message}")


class ConfigManager:
    """Loads and validates the engine configuration file."""

    def __init__(self, config_path: str = "config.yaml"):
        """Initialize configuration manager.

        Args:
            config_path: Path to the YAML configuration file
        """
        self.config_path = config_path
        self.raw_config_data: Optional[dict[str, Any]] = None

    def load_config(self) -> MultiTimerConfig:
        """Load and validate the configuration.

        A missing file yields the default configuration.

        Returns:
            MultiTimerConfig: The validated configuration object

        Raises:
            ConfigValidationError: If the file cannot be parsed or is invalid
        """
        if not os.path.exists(self.config_path):
            logger.info(
                f"Configuration file '{self.config_path}' not found, using defaults"
            )
            return MultiTimerConfig()

        try:
            with open(self.config_path) as f:
                config_data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(
                f"Error loading configuration from file '{self.config_path}': {e}"
            )
            raise ConfigValidationError(f"Invalid YAML in config file: {e}", self.config_path)

        if not isinstance(config_data, dict):
            raise ConfigValidationError(
                "Top level of the config file must be a mapping", self.config_path
            )

        config_data = self._substitute_env_vars(config_data)
        self.raw_config_data = config_data

        try:
            config = MultiTimerConfig(**config_data)
        except ValidationError as e:
            logger.error(f"Error validating configuration: {e}")
            raise ConfigValidationError(str(e), self.config_path)

        logger.info(f"Configuration loaded from: {self.config_path}")
        return config

    def _substitute_env_vars(self, value: Any) -> Any:
        """Replace ``${VAR}`` and ``${VAR:default}`` references recursively."""
        if isinstance(value, dict):
            return {key: self._substitute_env_vars(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self._substitute_env_vars(item) for item in value]
        if isinstance(value, str):
            return _ENV_VAR_RE.sub(_replace_env_var, value)
        return value
