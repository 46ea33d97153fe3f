"""Tests for the shell_exec request handler."""

import base64
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from mcp_shell.config.settings import SecurityConfig
from mcp_shell.execution.executor import CommandExecutor, OutputLimitExceeded
from mcp_shell.security.audit import (
    AUDIT_LOGGER_NAME,
    COMMAND_DENIED,
    COMMAND_EXECUTED,
    COMMAND_REQUESTED,
    AuditLogger,
)
from mcp_shell.security.validator import CommandValidator
from mcp_shell.server.handler import ShellHandler, ToolResponse

pytestmark = [pytest.mark.asyncio, pytest.mark.posix]


def make_handler(config, audit_enabled=False):
    audit = AuditLogger(enabled=audit_enabled)
    return ShellHandler(
        CommandValidator(config, audit=audit), CommandExecutor(config), audit=audit
    )


@pytest.mark.parametrize(
    "config, command, is_error, message",
    [
        (
            SecurityConfig(enabled=True, allowed_executables=["echo", "ls"]),
            "echo hello",
            False,
            None,
        ),
        (
            SecurityConfig(enabled=True, allowed_executables=["echo", "ls"]),
            "rm file",
            True,
            "Security violation: executable 'rm' not in allowed list",
        ),
        (
            SecurityConfig(enabled=True, allowed_executables=["echo", "ls"]),
            "echo $(whoami)",
            True,
            "Security violation: command contains dangerous shell constructs",
        ),
        (
            SecurityConfig(enabled=True, allowed_executables=[]),
            "echo hello",
            True,
            "Security violation: no allowed executables configured",
        ),
        (
            SecurityConfig(enabled=True, use_shell_execution=True, blocked_commands=["rm"]),
            "echo hello | cat",
            False,
            None,
        ),
        (
            SecurityConfig(enabled=True, use_shell_execution=True, blocked_commands=["rm"]),
            "rm file",
            True,
            "Security violation: command contains blocked keyword: rm",
        ),
        (SecurityConfig(enabled=False), "echo hello", False, None),
    ],
)
async def test_handle(config, command, is_error, message):
    response = await make_handler(config).handle({"command": command})

    assert isinstance(response, ToolResponse)
    assert response.is_error is is_error
    if message:
        assert response.text.startswith(message)
    else:
        payload = json.loads(response.text)
        assert payload["status"] == "success"
        assert payload["stdout"] == "hello"


@pytest.mark.parametrize("arguments", [None, {}, {"command": 42}, {"base64": True}])
async def test_missing_command(arguments):
    handler = make_handler(SecurityConfig(enabled=False))

    response = await handler.handle(arguments)

    assert response == ToolResponse("Missing 'command' parameter", is_error=True)


async def test_response_payload():
    config = SecurityConfig(
        enabled=True,
        allowed_executables=["echo"],
        max_execution_time="5s",
    )

    response = await make_handler(config).handle({"command": "echo hello world"})
    payload = json.loads(response.text)

    assert payload["status"] == "success"
    assert payload["exit_code"] == 0
    assert payload["stdout"] == "hello world"
    assert payload["stderr"] == ""
    assert payload["command"] == "echo hello world"
    assert isinstance(payload["execution_time"], str)
    assert payload["security_info"] == {"security_enabled": True, "timeout_applied": True}
    assert "error" not in payload


@pytest.mark.parametrize("flag", [True, "true", 1])
async def test_base64_flag(flag):
    handler = make_handler(SecurityConfig(enabled=True, allowed_executables=["echo"]))

    response = await handler.handle({"command": "echo hello world", "base64": flag})
    payload = json.loads(response.text)

    assert base64.b64decode(payload["stdout"]) == b"hello world\n"


async def test_non_zero_exit_is_not_a_tool_error():
    config = SecurityConfig(enabled=True, use_shell_execution=True)

    response = await make_handler(config).handle({"command": "exit 3"})
    payload = json.loads(response.text)

    assert response.is_error is False
    assert payload["status"] == "error"
    assert payload["exit_code"] == 3


async def test_parse_failure_is_a_tool_error():
    # Disabled security skips validation, so the executor's own parser rejects it
    config = SecurityConfig(enabled=False, use_shell_execution=False)

    response = await make_handler(config).handle({"command": "echo a;b"})

    assert response.is_error is True
    assert response.text.startswith("command parsing failed:")


async def test_execution_error_becomes_tool_error():
    validator = CommandValidator(SecurityConfig(enabled=False))
    executor = MagicMock(spec=CommandExecutor)
    executor.execute = AsyncMock(side_effect=OutputLimitExceeded("stdout", 10, 5))

    response = await ShellHandler(validator, executor).handle({"command": "yes"})

    assert response == ToolResponse(
        "stdout exceeds maximum size limit (10 > 5 bytes)", is_error=True
    )


async def test_denied_command_never_executes():
    validator = CommandValidator(SecurityConfig(enabled=True, allowed_executables=["ls"]))
    executor = MagicMock(spec=CommandExecutor)
    executor.execute = AsyncMock()

    response = await ShellHandler(validator, executor).handle({"command": "rm -rf /"})

    assert response.is_error is True
    executor.execute.assert_not_called()


async def test_audit_trail(caplog):
    config = SecurityConfig(enabled=True, allowed_executables=["echo"], audit_log=True)
    handler = make_handler(config, audit_enabled=True)

    with caplog.at_level("INFO", logger=AUDIT_LOGGER_NAME):
        await handler.handle({"command": "echo hi"})
        await handler.handle({"command": "whoami"})

    events = [
        record.audit["event"] for record in caplog.records if record.name == AUDIT_LOGGER_NAME
    ]
    assert events == [COMMAND_REQUESTED, COMMAND_EXECUTED, COMMAND_REQUESTED, COMMAND_DENIED]
