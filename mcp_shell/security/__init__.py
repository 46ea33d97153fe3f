"""
Command security package.

This package decides whether a command string may be executed.
"""

from mcp_shell.security.audit import AuditLogger
from mcp_shell.security.validator import (
    CommandDenied,
    CommandValidator,
    LegacyMode,
    SecureMode,
    Unrestricted,
    ValidationMode,
    matches_executable,
    mode_from_config,
)

__all__ = [
    "AuditLogger",
    "CommandDenied",
    "CommandValidator",
    "LegacyMode",
    "SecureMode",
    "Unrestricted",
    "ValidationMode",
    "matches_executable",
    "mode_from_config",
]
