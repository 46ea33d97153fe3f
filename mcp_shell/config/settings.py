"""
Pydantic models for the mcp-shell configuration.

The models are immutable once built. Field defaults are the zero values of
each setting; the defaults a fresh install runs with live in
``config_loader.DEFAULT_CONFIG``.
"""

import re
from datetime import timedelta
from typing import Any, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mcp_shell.config.durations import parse_duration

VALID_LOG_LEVELS = ("debug", "info", "warn", "warning", "error", "fatal")


class SecurityConfig(BaseModel):
    """Settings shared read-only by the command validator and executor."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(
        default=False, description="Master switch; when off every command is allowed."
    )
    use_shell_execution: bool = Field(
        default=False,
        description="Legacy mode: hand the command to a shell instead of executing it directly.",
    )
    allowed_executables: Tuple[str, ...] = Field(
        default=(), description="Secure-mode allowlist of executable names or absolute paths."
    )
    allowed_commands: Tuple[str, ...] = Field(
        default=(), description="Legacy-mode allowed command prefixes."
    )
    blocked_commands: Tuple[str, ...] = Field(
        default=(), description="Legacy-mode blocked keywords (substring match)."
    )
    blocked_patterns: Tuple[str, ...] = Field(
        default=(), description="Legacy-mode blocked regular expressions."
    )
    max_execution_time: float = Field(
        default=0.0, ge=0, description="Timeout in seconds; 0 selects the executor default."
    )
    working_directory: str = ""
    run_as_user: str = ""
    max_output_size: int = Field(
        default=0, ge=0, description="Per-stream output limit in bytes; 0 is unlimited."
    )
    audit_log: bool = False

    @field_validator("max_execution_time", mode="before")
    @classmethod
    def _parse_execution_time(cls, value: Any) -> Any:
        if isinstance(value, str):
            return parse_duration(value)
        if isinstance(value, timedelta):
            return value.total_seconds()
        return value

    @field_validator("blocked_patterns")
    @classmethod
    def _compile_patterns(cls, patterns: Tuple[str, ...]) -> Tuple[str, ...]:
        for pattern in patterns:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"invalid blocked pattern {pattern!r}: {e}") from e
        return patterns


class ServerConfig(BaseModel):
    """Identity advertised to MCP clients."""

    model_config = ConfigDict(frozen=True)

    name: str = "mcp-shell \U0001f41a"
    version: str = "dev"


class LoggingConfig(BaseModel):
    """Process-wide logging options, applied by the entry point."""

    model_config = ConfigDict(frozen=True)

    level: str = "info"
    format: str = Field(default="console", description="json or console")
    output: str = Field(default="stderr", description="stdout, stderr or file")

    @field_validator("level")
    @classmethod
    def _check_level(cls, level: str) -> str:
        level = level.lower()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(f"invalid log level: {level}")
        return level


class AppConfig(BaseModel):
    """Top-level configuration document."""

    model_config = ConfigDict(frozen=True)

    security: SecurityConfig = Field(default_factory=SecurityConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
