"""
MCP server package.

This package exposes command execution as the ``shell_exec`` MCP tool.
"""

from mcp_shell.server.handler import ShellHandler, ToolResponse
from mcp_shell.server.mcp_server import (
    TOOL_NAME,
    ToolCallError,
    build_handler,
    build_shell_tool,
    setup_mcp_server,
    start_server,
)

__all__ = [
    "TOOL_NAME",
    "ShellHandler",
    "ToolCallError",
    "ToolResponse",
    "build_handler",
    "build_shell_tool",
    "setup_mcp_server",
    "start_server",
]
