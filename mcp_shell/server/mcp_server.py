#!/usr/bin/env python3
"""
MCP Shell Server

Implements a standalone MCP server exposing a single ``shell_exec`` tool.
Each call is validated against the security configuration and then executed
either directly (secure mode) or through ``bash -c`` (legacy mode).

Usage:
    python -m mcp_shell [--config security.yaml]
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

import mcp.server.stdio
from mcp import types as mcp_types
from mcp.server.lowlevel import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from mcp_shell.config.settings import AppConfig, SecurityConfig
from mcp_shell.execution.executor import CommandExecutor
from mcp_shell.security.audit import AuditLogger
from mcp_shell.security.validator import CommandValidator
from mcp_shell.server.handler import ShellHandler

logger = logging.getLogger(__name__)

TOOL_NAME = "shell_exec"


class ToolCallError(Exception):
    """Raised from ``call_tool`` so the SDK reports the result as an error."""


def build_shell_tool(security: Optional[SecurityConfig] = None) -> mcp_types.Tool:
    """Describe the shell_exec tool for the configured security mode.

    Args:
        security: Security configuration the tool will run under

    Returns:
        The MCP tool definition
    """
    security = security or SecurityConfig()

    if not security.enabled:
        description = (
            "Execute shell commands with full system access. Returns structured JSON "
            "with stdout, stderr, exit code and execution status."
        )
    elif security.use_shell_execution:
        description = (
            "WARNING - legacy shell mode: executes a command through a shell after "
            "keyword and pattern checks. Returns structured JSON with stdout, stderr, "
            "exit code and execution status."
        )
    else:
        allowed = ", ".join(security.allowed_executables) or "none"
        description = (
            "Execute an allow-listed command directly, without a shell. Pipes, "
            "redirection, substitution and chaining are rejected. "
            f"Allowed executables: {allowed}. Returns structured JSON with stdout, "
            "stderr, exit code and execution status."
        )

    return mcp_types.Tool(
        name=TOOL_NAME,
        description=description,
        inputSchema={
            "type": "object",
            "properties": {
                "command": {
                    "type": "string",
                    "description": "Shell command to execute",
                },
                "base64": {
                    "type": "boolean",
                    "default": False,
                    "description": "Return stdout/stderr as base64-encoded strings "
                    "(useful for binary data)",
                },
            },
            "required": ["command"],
        },
    )


def build_handler(config: AppConfig) -> ShellHandler:
    """Wire the validator, executor and audit trail for one configuration."""
    audit = AuditLogger(enabled=config.security.audit_log)
    validator = CommandValidator(config.security, audit=audit)
    executor = CommandExecutor(config.security)
    return ShellHandler(validator, executor, audit=audit)


def setup_mcp_server(config: AppConfig) -> Tuple[Server, ShellHandler]:
    """
    Set up the MCP server for shell command execution.

    Args:
        config: Application configuration

    Returns:
        Tuple of (Server, ShellHandler)
    """
    security = config.security
    logger.info(f"Setting up MCP server '{config.server.name}' ({config.server.version})")
    logger.info(f"Security enabled: {security.enabled}")
    logger.info(f"Shell execution mode: {'legacy' if security.use_shell_execution else 'secure'}")
    if security.enabled and security.use_shell_execution:
        logger.warning("Legacy shell execution mode enabled - vulnerable to injection attacks")

    handler = build_handler(config)
    tool = build_shell_tool(security)

    app = Server(config.server.name)

    @app.list_tools()
    async def list_tools() -> List[mcp_types.Tool]:
        """MCP handler to list available tools."""
        logger.debug("MCP Server: Received list_tools request")
        return [tool]

    @app.call_tool()
    async def call_tool(
        name: str, arguments: Optional[Dict[str, Any]]
    ) -> List[mcp_types.TextContent]:
        """MCP handler to execute a tool call."""
        logger.debug(f"MCP Server: Received call_tool request for '{name}'")

        if name != TOOL_NAME:
            logger.warning(f"Unknown tool: {name}")
            raise ToolCallError(f"Tool '{name}' not implemented")

        response = await handler.handle(arguments)
        if response.is_error:
            raise ToolCallError(response.text)

        return [mcp_types.TextContent(type="text", text=response.text)]

    return app, handler


async def run_server(config: AppConfig) -> None:
    """Serve MCP requests over stdio until the client disconnects."""
    app, _ = setup_mcp_server(config)

    async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
        init_options = InitializationOptions(
            server_name=config.server.name,
            server_version=config.server.version,
            capabilities=app.get_capabilities(
                notification_options=NotificationOptions(),
                experimental_capabilities={},
            ),
        )
        logger.info("MCP Server starting...")
        await app.run(read_stream, write_stream, init_options)


def start_server(config: AppConfig) -> None:
    """
    Start the MCP server and block until it exits.

    Args:
        config: Application configuration
    """
    try:
        asyncio.run(run_server(config))
    except KeyboardInterrupt:
        logger.info("MCP Server interrupted by user")
    finally:
        logger.info("MCP Server exited")
