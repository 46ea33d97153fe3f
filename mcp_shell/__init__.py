"""
mcp-shell - shell command execution exposed as an MCP tool, with a command
validator and a shell-free execution mode.
"""

__version__ = "0.2.0"
