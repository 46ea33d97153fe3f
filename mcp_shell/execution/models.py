"""
Result models returned by the command executor.
"""

from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from mcp_shell.config.durations import format_duration

STATUS_SUCCESS = "success"
STATUS_ERROR = "error"


class SecurityInfo(BaseModel):
    """Security context a command ran under."""

    model_config = ConfigDict(frozen=True)

    security_enabled: bool
    working_dir: str = ""
    run_as_user: str = ""
    timeout_applied: bool = True

    def to_response(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"security_enabled": self.security_enabled}
        if self.working_dir:
            data["working_dir"] = self.working_dir
        if self.run_as_user:
            data["run_as_user"] = self.run_as_user
        data["timeout_applied"] = self.timeout_applied
        return data


class ExecutionResult(BaseModel):
    """Outcome of a single command execution."""

    model_config = ConfigDict(frozen=True)

    status: str = Field(description="success or error")
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    command: str
    execution_time: float = Field(default=0.0, description="Wall time in seconds.")
    security_info: Optional[SecurityInfo] = None
    warnings: Tuple[str, ...] = ()
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == STATUS_SUCCESS

    def to_response(self) -> Dict[str, Any]:
        """Build the mapping serialized back to the tool caller."""
        response: Dict[str, Any] = {
            "status": self.status,
            "exit_code": self.exit_code,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "command": self.command,
            "execution_time": format_duration(self.execution_time),
        }
        if self.security_info is not None:
            response["security_info"] = self.security_info.to_response()
        if self.warnings:
            response["warnings"] = list(self.warnings)
        if self.error:
            response["error"] = self.error
        return response
