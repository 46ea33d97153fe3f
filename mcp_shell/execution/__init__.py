"""
Command execution package.

This package starts validated commands as child processes and reports their
results.
"""

from mcp_shell.execution.executor import (
    CommandExecutor,
    CommandParseError,
    ExecutionError,
    OutputLimitExceeded,
    parse_command,
    resolve_executable,
)
from mcp_shell.execution.models import ExecutionResult, SecurityInfo

__all__ = [
    "CommandExecutor",
    "CommandParseError",
    "ExecutionError",
    "ExecutionResult",
    "OutputLimitExceeded",
    "SecurityInfo",
    "parse_command",
    "resolve_executable",
]
