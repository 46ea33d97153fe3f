"""
Command-line entry point for the mcp-shell server.

Usage:
    python -m mcp_shell [--config PATH] [--log-level LEVEL]
"""

import argparse
import logging
import sys

from mcp_shell import __version__
from mcp_shell.config.config_loader import ConfigError, ConfigLoader
from mcp_shell.logging_config import setup_logging
from mcp_shell.server.mcp_server import start_server

logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    """Parse arguments, load configuration and serve over stdio."""
    parser = argparse.ArgumentParser(
        description="MCP server exposing validated shell command execution"
    )
    parser.add_argument(
        "--config",
        help="Path to the YAML security configuration "
        "(defaults to $MCP_SHELL_SEC_CONFIG_FILE)",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warn", "error", "fatal"],
        help="Override the configured log level",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    args = parser.parse_args(argv)

    try:
        config = ConfigLoader(args.config).get_config()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(config.logging, level=args.log_level)
    logger.info(f"Starting {config.server.name} {config.server.version}")

    start_server(config)
    return 0


if __name__ == "__main__":
    sys.exit(main())
