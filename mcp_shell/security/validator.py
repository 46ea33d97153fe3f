"""
Command validation for the shell_exec tool.

Two validation modes exist and exactly one governs any configuration:

1. Secure Mode (``use_shell_execution: false``): the command is split into an
   executable and arguments, the executable must be in
   ``allowed_executables``, and any shell metacharacter or construct is
   rejected outright. An empty allowlist blocks everything.
2. Legacy Mode (``use_shell_execution: true``): the raw command text is
   checked against blocked patterns, blocked keywords and allowed prefixes.
   The command is later interpreted by a shell, so anything assembled at
   runtime (nested substitution, variable expansion) is invisible to these
   checks. This mode is kept for backwards compatibility only.

When security is disabled every command is allowed.
"""

import logging
import os
import re
import shutil
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from mcp_shell.config.settings import SecurityConfig
from mcp_shell.security.audit import (
    COMMAND_DENIED,
    SECURITY_BYPASSED,
    AuditLogger,
    disabled_audit,
)
from mcp_shell.security.lexer import (
    contains_dangerous_constructs,
    contains_shell_metacharacters,
    split_command,
)

logger = logging.getLogger(__name__)


class CommandDenied(PermissionError):
    """Raised when a command is rejected by the validator."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


@dataclass(frozen=True)
class Unrestricted:
    """Security disabled: every command is allowed."""


@dataclass(frozen=True)
class SecureMode:
    """Executable allowlist, direct execution."""

    allowed_executables: Tuple[str, ...]


@dataclass(frozen=True)
class LegacyMode:
    """Substring, prefix and pattern checks on text handed to a shell."""

    allowed_commands: Tuple[str, ...]
    blocked_commands: Tuple[str, ...]
    blocked_patterns: Tuple[str, ...]


ValidationMode = Union[Unrestricted, SecureMode, LegacyMode]


def mode_from_config(config: SecurityConfig) -> ValidationMode:
    """Select the single validation mode a configuration implies."""
    if not config.enabled:
        return Unrestricted()
    if config.use_shell_execution:
        return LegacyMode(
            allowed_commands=config.allowed_commands,
            blocked_commands=config.blocked_commands,
            blocked_patterns=config.blocked_patterns,
        )
    return SecureMode(allowed_executables=config.allowed_executables)


def matches_executable(executable: str, pattern: str) -> bool:
    """Check whether a candidate executable matches one allowlist entry.

    Args:
        executable: First token of the command
        pattern: Allowlist entry (a bare name or an absolute path)

    Returns:
        True on an exact match, on absolute-path equality when the entry is
        absolute, or on basename equality when both are relative and the
        candidate resolves on PATH.
    """
    if executable == pattern:
        return True

    if os.path.isabs(pattern):
        return os.path.abspath(executable) == pattern

    if not os.path.isabs(executable) and os.path.basename(executable) == pattern:
        return shutil.which(executable) is not None

    return False


class CommandValidator:
    """Decides whether a command may be executed under a security config."""

    def __init__(self, config: SecurityConfig, audit: Optional[AuditLogger] = None):
        self.config = config
        self.mode = mode_from_config(config)
        self.audit = audit or disabled_audit()

    def is_enabled(self) -> bool:
        return self.config.enabled

    def validate_command(self, command: str) -> None:
        """Validate a command against the configured mode.

        Args:
            command: The raw command string

        Raises:
            CommandDenied: If the command must not be executed
        """
        mode = self.mode

        if isinstance(mode, Unrestricted):
            logger.debug(f"Security disabled, allowing command: {command}")
            self.audit.record(SECURITY_BYPASSED, command)
            return

        logger.debug(f"Validating command: {command}")
        try:
            if isinstance(mode, SecureMode):
                self._validate_secure(command, mode)
            elif isinstance(mode, LegacyMode):
                logger.warning(
                    f"Using legacy shell execution mode - this is vulnerable to "
                    f"injection attacks: {command}"
                )
                self._validate_legacy(command, mode)
            else:
                raise CommandDenied(f"unsupported validation mode: {mode!r}")
        except CommandDenied as e:
            self.audit.record(COMMAND_DENIED, command, reason=e.reason)
            raise

    def _validate_secure(self, command: str, mode: SecureMode) -> None:
        if not mode.allowed_executables:
            logger.warning(f"No allowed executables configured - blocking: {command}")
            raise CommandDenied(
                "no allowed executables configured - all commands blocked for security"
            )

        command = command.strip()
        if not command:
            raise CommandDenied("empty command")

        if contains_dangerous_constructs(command):
            raise CommandDenied(
                f"command contains dangerous shell constructs (not allowed in secure mode): {command}"
            )

        if contains_shell_metacharacters(command):
            raise CommandDenied(
                f"command contains shell metacharacters (not allowed in secure mode): {command}"
            )

        parts = split_command(command)
        executable, arguments = parts[0], parts[1:]

        if not any(
            matches_executable(executable, allowed)
            for allowed in mode.allowed_executables
        ):
            logger.warning(
                f"Executable '{executable}' not in allowed list: "
                f"{list(mode.allowed_executables)}"
            )
            raise CommandDenied(f"executable '{executable}' not in allowed list")

        for arg in arguments:
            if contains_dangerous_constructs(arg):
                raise CommandDenied(f"argument contains dangerous shell constructs: {arg}")

        logger.debug(f"Command validated against allowed executable '{executable}'")

    def _validate_legacy(self, command: str, mode: LegacyMode) -> None:
        for pattern in mode.blocked_patterns:
            if re.search(pattern, command):
                logger.warning(f"Command blocked by pattern '{pattern}': {command}")
                raise CommandDenied(f"command matches blocked pattern: {pattern}")

        for blocked in mode.blocked_commands:
            if blocked in command:
                logger.warning(f"Command contains blocked keyword '{blocked}': {command}")
                raise CommandDenied(f"command contains blocked keyword: {blocked}")

        if mode.allowed_commands:
            stripped = command.strip()
            if not any(stripped.startswith(prefix) for prefix in mode.allowed_commands):
                logger.warning(f"Command not in allowed list: {command}")
                raise CommandDenied("command not in allowed list")

        logger.debug(f"Legacy command validation passed: {command}")
