"""
Audit trail for command requests.

An ``AuditLogger`` is built once from the security configuration and handed
to each component that needs to record audit events. There is no module
level audit state.
"""

import logging
from typing import Any, Optional

AUDIT_LOGGER_NAME = "mcp_shell.audit"

COMMAND_REQUESTED = "command_requested"
SECURITY_BYPASSED = "security_bypassed"
COMMAND_DENIED = "command_denied"
COMMAND_EXECUTED = "command_executed"


class AuditLogger:
    """Records audit events on a dedicated logger when enabled."""

    def __init__(self, enabled: bool, logger: Optional[logging.Logger] = None):
        self.enabled = enabled
        self._logger = logger or logging.getLogger(AUDIT_LOGGER_NAME)

    def record(self, event: str, command: str, **fields: Any) -> None:
        """Emit a single audit record.

        Args:
            event: Event name, e.g. ``command_requested``
            command: The raw command string the event refers to
            **fields: Additional structured fields attached to the record
        """
        if not self.enabled:
            return

        payload = {"event": event, "command": command}
        payload.update(fields)
        self._logger.info(f"audit: {event}", extra={"audit": payload})


def disabled_audit() -> AuditLogger:
    """Return an audit logger that records nothing."""
    return AuditLogger(enabled=False)
