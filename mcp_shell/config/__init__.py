"""
Configuration management for mcp-shell.
"""

from mcp_shell.config.config_loader import (
    DEFAULT_CONFIG,
    ConfigError,
    ConfigLoader,
    load_config,
    validate_config,
)
from mcp_shell.config.durations import format_duration, parse_duration
from mcp_shell.config.settings import (
    AppConfig,
    LoggingConfig,
    SecurityConfig,
    ServerConfig,
)

__all__ = [
    "DEFAULT_CONFIG",
    "AppConfig",
    "ConfigError",
    "ConfigLoader",
    "LoggingConfig",
    "SecurityConfig",
    "ServerConfig",
    "format_duration",
    "load_config",
    "parse_duration",
    "validate_config",
]
