"""Handler for shell_exec tool calls.

Turns a decoded tool-call argument mapping into a validated execution and a
JSON text response. Denials and execution errors never propagate out of
``ShellHandler.handle``; they come back as error responses.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from mcp_shell.execution.executor import CommandExecutor, ExecutionError
from mcp_shell.security.audit import (
    COMMAND_EXECUTED,
    COMMAND_REQUESTED,
    AuditLogger,
)
from mcp_shell.security.validator import CommandDenied, CommandValidator

logger = logging.getLogger(__name__)

_TRUE_STRINGS = {"1", "true", "yes", "y", "on"}


@dataclass(frozen=True)
class ToolResponse:
    """Text payload of a tool call and whether it reports an error."""

    text: str
    is_error: bool = False


def _get_bool(arguments: Mapping[str, Any], key: str, default: bool) -> bool:
    value = arguments.get(key, default)
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    if isinstance(value, (int, float)):
        return value != 0
    return default


class ShellHandler:
    """Validates and executes one shell_exec request at a time."""

    def __init__(
        self,
        validator: CommandValidator,
        executor: CommandExecutor,
        audit: Optional[AuditLogger] = None,
    ):
        self.validator = validator
        self.executor = executor
        self.audit = audit or validator.audit

    async def handle(self, arguments: Optional[Mapping[str, Any]]) -> ToolResponse:
        """Handle a shell_exec call.

        Args:
            arguments: Tool arguments; ``command`` (str, required) and
                ``base64`` (bool, optional)

        Returns:
            ToolResponse holding the JSON result, or an error message
        """
        arguments = arguments or {}
        command = arguments.get("command")
        if not isinstance(command, str):
            logger.error("Missing command parameter")
            return ToolResponse("Missing 'command' parameter", is_error=True)

        logger.info(f"Received shell command request: {command}")

        if self.validator.is_enabled():
            self.audit.record(COMMAND_REQUESTED, command)

        try:
            self.validator.validate_command(command)
        except CommandDenied as e:
            logger.warning(f"Security validation failed for '{command}': {e.reason}")
            return ToolResponse(f"Security violation: {e.reason}", is_error=True)

        use_base64 = _get_bool(arguments, "base64", False)

        try:
            result = await self.executor.execute(command, use_base64)
        except ExecutionError as e:
            logger.error(f"Command execution failed for '{command}': {e}")
            return ToolResponse(str(e), is_error=True)

        self.audit.record(
            COMMAND_EXECUTED, command, status=result.status, exit_code=result.exit_code
        )

        text = json.dumps(result.to_response(), ensure_ascii=False)
        logger.debug(f"Request handled successfully: {command} status={result.status}")
        return ToolResponse(text)
