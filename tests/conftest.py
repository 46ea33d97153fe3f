"""
Configuration for pytest.

This file provides common fixtures and configuration for all tests.
"""

import os

import pytest

from mcp_shell.config.settings import SecurityConfig


def pytest_collection_modifyitems(items):
    """Skip tests that need POSIX process semantics on other platforms."""
    if os.name == "posix":
        return

    skip_posix = pytest.mark.skip(reason="requires POSIX process semantics")
    for item in items:
        if "posix" in item.keywords:
            item.add_marker(skip_posix)


@pytest.fixture
def secure_config():
    """Secure mode with a small executable allowlist."""
    return SecurityConfig(
        enabled=True,
        use_shell_execution=False,
        allowed_executables=["echo", "ls", "pwd"],
        max_execution_time="5s",
    )


@pytest.fixture
def legacy_config():
    """Legacy shell mode with keyword and pattern blocks."""
    return SecurityConfig(
        enabled=True,
        use_shell_execution=True,
        blocked_commands=["rm", "chmod", "chown", "sudo"],
        blocked_patterns=[r"rm\s+-rf", r"chmod\s+"],
        max_execution_time="5s",
    )
