"""Command execution for the shell_exec tool.

Commands that passed validation are started here in one of two ways:

- Secure execution (default): the command is split on whitespace and the
  executable is started directly with the remaining tokens as its argument
  vector. No shell is involved, so no argument can be reinterpreted as a
  separator, substitution or redirection.
- Legacy shell execution (``use_shell_execution: true``): the whole command
  string is passed to ``bash -c``. Full shell semantics apply.

Both paths share the same resource controls:
- A timeout (``max_execution_time``, 30s when unset) bounding the whole run;
  on expiry or caller cancellation the child's process group is killed
- Optional working directory and user identity, applied best-effort with a
  warning recorded on the result when they cannot be honoured
- A per-stream output size limit checked after the process has finished
"""

import asyncio
import base64
import logging
import os
import shutil
import signal
import time
from typing import Any, Dict, List, Optional, Tuple

from mcp_shell.config.durations import format_duration
from mcp_shell.config.settings import SecurityConfig
from mcp_shell.execution.identity import (
    IdentityError,
    IdentitySwitcher,
    default_identity_switcher,
)
from mcp_shell.execution.models import (
    STATUS_ERROR,
    STATUS_SUCCESS,
    ExecutionResult,
    SecurityInfo,
)
from mcp_shell.security.lexer import (
    contains_dangerous_constructs,
    contains_shell_metacharacters,
    split_command,
)

DEFAULT_TIMEOUT = 30.0  # seconds
DEFAULT_SHELL = "bash"
KILL_GRACE_PERIOD = 5.0  # seconds to collect a killed process
_READ_CHUNK = 64 * 1024

logger = logging.getLogger(__name__)


class ExecutionError(RuntimeError):
    """Raised when a command cannot be executed to a reportable result."""


class CommandParseError(ExecutionError):
    """Raised when a command cannot be split into a safe argument vector."""


class OutputLimitExceeded(ExecutionError):
    """Raised when a finished command produced more output than allowed."""

    def __init__(self, stream: str, size: int, limit: int):
        super().__init__(
            f"{stream} exceeds maximum size limit ({size} > {limit} bytes)"
        )
        self.stream = stream
        self.size = size
        self.limit = limit


def parse_command(command: str) -> Tuple[str, List[str]]:
    """Split a command into an executable and its arguments without a shell.

    Args:
        command: The raw command string

    Returns:
        Tuple of (executable, arguments)

    Raises:
        CommandParseError: If the command is empty, the executable contains
            shell metacharacters or an argument contains a dangerous construct
    """
    command = command.strip()
    if not command:
        raise CommandParseError("empty command")

    parts = split_command(command)
    executable, args = parts[0], parts[1:]

    if contains_shell_metacharacters(executable):
        raise CommandParseError(f"executable contains shell metacharacters: {executable}")

    for arg in args:
        if contains_dangerous_constructs(arg):
            raise CommandParseError(f"argument contains dangerous shell constructs: {arg}")

    return executable, args


def resolve_executable(executable: str) -> str:
    """Pin an executable to an absolute path relative to the server's cwd.

    The child may run in another working directory, so a relative path or a
    PATH entry such as ``.`` must not be re-resolved there. Names that cannot
    be found are returned unchanged and fail at spawn time.
    """
    if os.path.isabs(executable):
        return executable
    if os.sep in executable:
        return os.path.abspath(executable)
    resolved = shutil.which(executable)
    return os.path.abspath(resolved) if resolved else executable


def _render_output(data: bytearray, use_base64: bool) -> str:
    if use_base64:
        return base64.b64encode(bytes(data)).decode("ascii")
    text = bytes(data).decode("utf-8", errors="replace")
    if text.endswith("\n"):
        text = text[:-1]
    return text


async def _drain(stream: Optional[asyncio.StreamReader], buffer: bytearray) -> None:
    if stream is None:
        return
    while True:
        chunk = await stream.read(_READ_CHUNK)
        if not chunk:
            return
        buffer.extend(chunk)


class CommandExecutor:
    """Runs validated commands as child processes."""

    def __init__(
        self,
        config: SecurityConfig,
        identity: Optional[IdentitySwitcher] = None,
        shell: str = DEFAULT_SHELL,
    ):
        self.config = config
        self.identity = identity or default_identity_switcher()
        self.shell = shell

    @property
    def timeout(self) -> float:
        return self.config.max_execution_time or DEFAULT_TIMEOUT

    def parse_command(self, command: str) -> Tuple[str, List[str]]:
        return parse_command(command)

    async def execute(self, command: str, use_base64: bool = False) -> ExecutionResult:
        """Execute a command and collect its result.

        Args:
            command: Command string already approved by the validator
            use_base64: Return stdout/stderr base64-encoded instead of as text

        Returns:
            ExecutionResult; a non-zero exit, a spawn failure or a timeout is
            reported through its ``status``, ``exit_code`` and ``error``

        Raises:
            CommandParseError: If secure execution cannot parse the command
            OutputLimitExceeded: If either stream exceeded ``max_output_size``
        """
        start = time.monotonic()
        logger.info(f"Executing command: {command} (base64={use_base64})")

        try:
            result = await self._execute(command, use_base64, start)
        except ExecutionError as e:
            logger.error(f"Command execution failed: {command}: {e}")
            raise

        logger.info(
            f"Command execution completed: {command} status={result.status} "
            f"exit_code={result.exit_code} "
            f"execution_time={format_duration(result.execution_time)}"
        )
        return result

    async def _execute(self, command: str, use_base64: bool, start: float) -> ExecutionResult:
        argv = self._build_argv(command)
        warnings: List[str] = []
        options = self._spawn_options(warnings)

        stdout_buf = bytearray()
        stderr_buf = bytearray()
        exit_code, error = await self._run(argv, options, stdout_buf, stderr_buf)

        self._check_output_size(stdout_buf, stderr_buf)

        return ExecutionResult(
            status=STATUS_SUCCESS if exit_code == 0 and error is None else STATUS_ERROR,
            exit_code=exit_code,
            stdout=_render_output(stdout_buf, use_base64),
            stderr=_render_output(stderr_buf, use_base64),
            command=command,
            execution_time=time.monotonic() - start,
            security_info=SecurityInfo(
                security_enabled=self.config.enabled,
                working_dir=self.config.working_directory,
                run_as_user=self.config.run_as_user,
                timeout_applied=True,
            ),
            warnings=tuple(warnings),
            error=error,
        )

    def _build_argv(self, command: str) -> List[str]:
        if self.config.use_shell_execution:
            logger.warning(
                f"Using legacy shell execution mode - vulnerable to injection attacks: {command}"
            )
            return [self.shell, "-c", command]

        try:
            executable, args = self.parse_command(command)
        except CommandParseError as e:
            logger.error(f"Failed to parse command securely: {command}: {e}")
            raise CommandParseError(f"command parsing failed: {e}") from e

        executable = resolve_executable(executable)
        logger.debug(f"Executing {executable} directly with args {args}")
        return [executable, *args]

    def _spawn_options(self, warnings: List[str]) -> Dict[str, Any]:
        options: Dict[str, Any] = {}

        working_dir = self.config.working_directory
        if working_dir:
            try:
                os.makedirs(working_dir, mode=0o755, exist_ok=True)
            except OSError as e:
                message = (
                    f"could not use working directory '{working_dir}': {e}; "
                    f"running in {os.getcwd()}"
                )
                logger.warning(message)
                warnings.append(message)
            else:
                options["cwd"] = working_dir
                logger.debug(f"Set working directory: {working_dir}")

        user = self.config.run_as_user
        if user:
            try:
                options.update(self.identity.spawn_options(user))
            except IdentityError as e:
                # TODO: decide with operators whether this should abort the call
                message = f"could not run as user '{user}': {e}; running as current user"
                logger.warning(message)
                warnings.append(message)
            else:
                logger.debug(f"Set process credentials for user: {user}")

        return options

    async def _run(
        self,
        argv: List[str],
        options: Dict[str, Any],
        stdout_buf: bytearray,
        stderr_buf: bytearray,
    ) -> Tuple[int, Optional[str]]:
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
                **options,
            )
        except OSError as e:
            logger.error(f"Failed to start {argv[0]}: {e}")
            return -1, f"failed to start command: {e}"

        try:
            returncode = await asyncio.wait_for(
                self._communicate(process, stdout_buf, stderr_buf), self.timeout
            )
        except asyncio.TimeoutError:
            await self._terminate(process, stdout_buf, stderr_buf)
            message = f"command timed out after {format_duration(self.timeout)}"
            logger.warning(f"{message}: {argv}")
            return -1, message
        except asyncio.CancelledError:
            logger.warning(f"Command cancelled, killing process {process.pid}")
            await self._terminate(process, stdout_buf, stderr_buf)
            raise

        if returncode < 0:
            return -1, f"command terminated by signal {-returncode}"
        return returncode, None

    @staticmethod
    async def _communicate(
        process: asyncio.subprocess.Process, stdout_buf: bytearray, stderr_buf: bytearray
    ) -> int:
        await asyncio.gather(
            _drain(process.stdout, stdout_buf), _drain(process.stderr, stderr_buf)
        )
        return await process.wait()

    async def _terminate(
        self,
        process: asyncio.subprocess.Process,
        stdout_buf: bytearray,
        stderr_buf: bytearray,
    ) -> None:
        """Kill the child's process group and reap it."""
        try:
            if hasattr(os, "killpg"):
                os.killpg(process.pid, signal.SIGKILL)
            elif process.returncode is None:
                process.kill()
        except ProcessLookupError:
            logger.debug(f"Process group {process.pid} already exited")

        try:
            await asyncio.wait_for(
                self._communicate(process, stdout_buf, stderr_buf), KILL_GRACE_PERIOD
            )
        except asyncio.TimeoutError:
            logger.error(
                f"Process {process.pid} did not release its output streams "
                f"within {format_duration(KILL_GRACE_PERIOD)} of being killed"
            )

    def _check_output_size(self, stdout_buf: bytearray, stderr_buf: bytearray) -> None:
        limit = self.config.max_output_size
        if limit <= 0:
            return
        for stream, buffer in (("stdout", stdout_buf), ("stderr", stderr_buf)):
            if len(buffer) > limit:
                logger.warning(
                    f"{stream} exceeds maximum size limit: {len(buffer)} > {limit} bytes"
                )
                raise OutputLimitExceeded(stream, len(buffer), limit)
