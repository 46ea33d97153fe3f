"""
ConfigLoader for the YAML security configuration with environment overrides.
"""

import copy
import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional, Union

import jsonschema
import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from mcp_shell.config.durations import parse_duration
from mcp_shell.config.settings import VALID_LOG_LEVELS, AppConfig

# Define logger
logger = logging.getLogger(__name__)

CONFIG_FILE_ENV_VARS = ("MCP_SHELL_SEC_CONFIG_FILE", "MCP_SHELL_CONFIG_FILE")

# Only server and logging settings may come from the environment
ENV_OVERRIDES = {
    "MCP_SHELL_SERVER_NAME": ("server", "name"),
    "MCP_SHELL_VERSION": ("server", "version"),
    "MCP_SHELL_LOG_LEVEL": ("logging", "level"),
    "MCP_SHELL_LOG_FORMAT": ("logging", "format"),
    "MCP_SHELL_LOG_OUTPUT": ("logging", "output"),
}

DEFAULT_CONFIG: Dict[str, Any] = {
    "security": {
        "enabled": False,
        "use_shell_execution": False,
        "allowed_executables": [],
        "allowed_commands": [],
        "blocked_commands": ["rm -rf", "sudo", "chmod 777", "dd", "mkfs", "fdisk"],
        "blocked_patterns": [
            r"rm\s+.*-rf.*",
            r"sudo\s+.*",
            r"chmod\s+(777|666)",
            r">/dev/",
            r"format\s+",
        ],
        "max_execution_time": "30s",
        "working_directory": "/tmp/mcp-workspace",
        "run_as_user": "",
        "max_output_size": 1024 * 1024,
        "audit_log": True,
    },
    "server": {
        "name": "mcp-shell \U0001f41a",
        "version": "dev",
    },
    "logging": {
        "level": "info",
        "format": "console",
        "output": "stderr",
    },
}


class ConfigError(Exception):
    """Exception raised for configuration errors."""

    pass


def validate_config(config: Dict[str, Any]) -> None:
    """
    Check configuration values the schema cannot express.

    Args:
        config: The merged configuration dictionary

    Raises:
        ConfigError: On a malformed duration, a negative size limit or an
            unknown log level
    """
    security = config.get("security", {})

    max_time = security.get("max_execution_time")
    if isinstance(max_time, str) and max_time:
        try:
            parse_duration(max_time)
        except ValueError as e:
            raise ConfigError(f"invalid max_execution_time: {e}") from e

    if security.get("max_output_size", 0) < 0:
        raise ConfigError("max_output_size cannot be negative")

    level = str(config.get("logging", {}).get("level", "info")).lower()
    if level not in VALID_LOG_LEVELS:
        raise ConfigError(f"invalid log level: {level}")


class ConfigLoader:
    """
    Loads the configuration file, applies environment overrides and builds
    the immutable ``AppConfig``.
    """

    def __init__(
        self,
        config_path: Optional[Union[str, Path]] = None,
        load_env_file: bool = True,
    ):
        """
        Initialize the configuration loader.

        Args:
            config_path: Optional explicit path to the YAML configuration
            load_env_file: Load a ``.env`` file from the working directory first

        Raises:
            ConfigError: If the configuration cannot be loaded or is invalid
        """
        if load_env_file:
            load_dotenv()

        self.config_path = self._find_config_path(config_path)
        self.schema_path = Path(__file__).parent / "schema" / "config_schema.json"
        self.raw_config = self._load_config()
        self.config = self._build_config(self.raw_config)
        logger.info(f"ConfigLoader: config={self.config_path or 'defaults'}")

    def _find_config_path(
        self, config_path: Optional[Union[str, Path]] = None
    ) -> Optional[Path]:
        """
        Find the configuration file path.

        An explicit path wins over ``MCP_SHELL_SEC_CONFIG_FILE`` (or the older
        ``MCP_SHELL_CONFIG_FILE``). Without either, defaults are used.

        Raises:
            ConfigError: If a configured path does not exist
        """
        if config_path:
            path = Path(config_path)
            if not path.exists():
                raise ConfigError(f"Config file does not exist: {path}")
            return path

        for env_var in CONFIG_FILE_ENV_VARS:
            env_path = os.getenv(env_var)
            if env_path:
                path = Path(env_path)
                if not path.exists():
                    raise ConfigError(f"Config file from {env_var} does not exist: {path}")
                return path

        return None

    def _load_schema(self) -> Dict[str, Any]:
        with open(self.schema_path, "r") as f:
            return json.load(f)

    def _interpolate_env_vars(self, value: Any) -> Any:
        """
        Recursively replace ``${ENV_VAR}`` with the variable's value.

        The bare ``$VAR`` form is left alone so regular expressions in
        ``blocked_patterns`` keep their anchors.
        """
        if isinstance(value, str):

            def replace_env_var(match):
                env_var = match.group(1)
                return os.environ.get(env_var, match.group(0))

            return re.sub(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}", replace_env_var, value)
        elif isinstance(value, list):
            return [self._interpolate_env_vars(item) for item in value]
        elif isinstance(value, dict):
            return {k: self._interpolate_env_vars(v) for k, v in value.items()}
        else:
            return value

    def _deep_merge(self, base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
        """Deep-merge *overlay* into *base* (overlay wins on leaf conflicts)."""
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = self._deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        for env_var, (section, key) in ENV_OVERRIDES.items():
            value = os.getenv(env_var)
            if value:
                config.setdefault(section, {})[key] = value
                logger.debug(f"Applied {env_var} override to {section}.{key}")
        return config

    def _load_config(self) -> Dict[str, Any]:
        """
        Load, merge and validate the configuration dictionary.

        Raises:
            ConfigError: If the file cannot be parsed or fails validation
        """
        config = copy.deepcopy(DEFAULT_CONFIG)

        if self.config_path is not None:
            try:
                with open(self.config_path, "r") as f:
                    file_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                error_msg = f"Error parsing {self.config_path}: {e}"
                logger.error(error_msg)
                raise ConfigError(error_msg) from e
            except OSError as e:
                raise ConfigError(f"Error reading {self.config_path}: {e}") from e

            if not isinstance(file_config, dict):
                raise ConfigError(f"{self.config_path} must contain a mapping")

            config = self._deep_merge(config, self._interpolate_env_vars(file_config))

        config = self._apply_env_overrides(config)

        try:
            jsonschema.validate(instance=config, schema=self._load_schema())
        except jsonschema.exceptions.ValidationError as e:
            path = " -> ".join([str(p) for p in e.path])
            message = f"Configuration validation error: {e.message}"
            if path:
                message = f"{message} (at {path})"
            raise ConfigError(message) from e

        validate_config(config)
        return config

    def _build_config(self, config: Dict[str, Any]) -> AppConfig:
        try:
            return AppConfig.model_validate(config)
        except ValidationError as e:
            raise ConfigError(f"invalid configuration: {e}") from e

    def get_config(self) -> AppConfig:
        return self.config


def load_config(config_path: Optional[Union[str, Path]] = None) -> AppConfig:
    """Load the application configuration.

    Args:
        config_path: Optional explicit path to the YAML configuration

    Returns:
        The validated configuration

    Raises:
        ConfigError: If the configuration cannot be loaded or is invalid
    """
    return ConfigLoader(config_path).get_config()
