"""Shell command executor with hard timeouts and a bounded worker pool."""

from __future__ import annotations

import asyncio
import os
import signal
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from cmdkit.core.logging import get_logger

from .exceptions import CommandExecutionError, ExecutionErrorKind

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0
DEFAULT_MAX_CONCURRENCY = 4

STDERR_MARKER = "\n[STDERR]\n"
NO_OUTPUT_MESSAGE = "[INFO] Command completed successfully with no output."


class ExecutionSettings(BaseModel):
    """Executor configuration."""

    model_config = ConfigDict(frozen=True)

    timeout: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0, description="Seconds before the process is killed")
    max_concurrency: int = Field(
        default=DEFAULT_MAX_CONCURRENCY, gt=0, description="Maximum number of commands running at once"
    )


@dataclass(frozen=True, slots=True)
class ExecutionOutcome:
    """Result of a command that ran to completion within its timeout."""

    start_time: datetime
    end_time: datetime
    output: str
    exit_code: int | None


class ShellAdapter(ABC):
    """Turns a command string into a platform shell invocation."""

    name: str

    @abstractmethod
    def build_invocation(self, command: str) -> tuple[str, list[str]]:
        """Return (program, args) running the command verbatim in the shell."""
        ...

    def spawn_options(self) -> dict[str, Any]:
        """Extra keyword arguments for asyncio.create_subprocess_exec."""
        return {}

    def terminate(self, process: asyncio.subprocess.Process) -> None:
        """Forcibly stop the process without a grace period."""
        try:
            process.kill()
        except ProcessLookupError:
            pass  # already exited


class PosixShellAdapter(ShellAdapter):
    """Runs commands through ``sh -c`` in a fresh process group."""

    name = "posix"

    def build_invocation(self, command: str) -> tuple[str, list[str]]:
        return "sh", ["-c", command]

    def spawn_options(self) -> dict[str, Any]:
        return {"start_new_session": True}

    def terminate(self, process: asyncio.subprocess.Process) -> None:
        # Kill the whole group so children of the shell release the pipes too
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass  # already exited


class WindowsShellAdapter(ShellAdapter):
    """Runs commands through ``cmd /c``."""

    name = "windows"

    def build_invocation(self, command: str) -> tuple[str, list[str]]:
        return "cmd", ["/c", command]


def select_shell_adapter(platform: str | None = None) -> ShellAdapter:
    """Pick the shell adapter for a ``sys.platform`` value (default: this host)."""
    platform = sys.platform if platform is None else platform
    if platform.startswith(("win", "cygwin")):
        return WindowsShellAdapter()
    return PosixShellAdapter()


def _decode(data: bytes | None) -> str:
    if not data:
        return ""
    text = data.decode("utf-8", errors="replace")
    return text.replace("\r\n", "\n").replace("\r", "\n")


def combine_output(stdout: str, stderr: str) -> str:
    """Merge captured streams into the text stored on an execution record."""
    output = stdout.strip()
    if stderr.strip():
        output += STDERR_MARKER + stderr.strip()
    output = output.strip()
    return output or NO_OUTPUT_MESSAGE


class CommandExecutor:
    """Spawns one shell process per run, bounded by a timeout and a concurrency limit.

    A run moves Idle -> Spawning -> Running and ends Completed, TimedOut or
    Failed. Only Completed yields an ExecutionOutcome; the other two raise
    CommandExecutionError. A non-zero exit status still counts as Completed.
    """

    def __init__(self, settings: ExecutionSettings | None = None, adapter: ShellAdapter | None = None) -> None:
        """Initialize executor with settings and shell adapter (platform default)."""
        self.settings = settings or ExecutionSettings()
        self.adapter = adapter or select_shell_adapter()
        self._slots = asyncio.Semaphore(self.settings.max_concurrency)
        self._running = 0

    @property
    def running(self) -> int:
        """Number of commands currently holding a worker slot."""
        return self._running

    @property
    def saturated(self) -> bool:
        return self._running >= self.settings.max_concurrency

    async def run(self, command: str) -> ExecutionOutcome:
        """Run a command and capture its output.

        The caller is responsible for validating the command first.
        """
        async with self._slots:
            self._running += 1
            try:
                return await self._run(command)
            finally:
                self._running -= 1

    async def _run(self, command: str) -> ExecutionOutcome:
        timeout = self.settings.timeout
        program, args = self.adapter.build_invocation(command)

        start_time = datetime.now(timezone.utc)
        try:
            process = await asyncio.create_subprocess_exec(
                program,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                **self.adapter.spawn_options(),
            )
        except OSError as e:
            logger.error("command.spawn_failed", program=program, error=str(e))
            raise CommandExecutionError(
                ExecutionErrorKind.SPAWN_FAILURE,
                f"Failed to start command: {e}",
                error_type=type(e).__name__,
            ) from e
        except Exception as e:
            # e.g. ValueError for an embedded NUL byte in the command
            logger.error("command.spawn_failed", program=program, error=str(e), error_type=type(e).__name__)
            raise CommandExecutionError(
                ExecutionErrorKind.RUNTIME_FAILURE,
                f"Command execution failed: {type(e).__name__} - {e}",
                error_type=type(e).__name__,
            ) from e

        logger.debug("command.spawned", pid=process.pid, shell=self.adapter.name, timeout=timeout)

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except TimeoutError:
            await self._kill(process)
            logger.warning("command.timed_out", pid=process.pid, timeout=timeout)
            raise CommandExecutionError(
                ExecutionErrorKind.TIMEOUT,
                f"Command execution timed out after {timeout:g} seconds.",
            )
        except Exception as e:
            await self._kill(process)
            logger.error("command.failed", pid=process.pid, error=str(e), error_type=type(e).__name__)
            raise CommandExecutionError(
                ExecutionErrorKind.RUNTIME_FAILURE,
                f"Command execution failed: {type(e).__name__} - {e}",
                error_type=type(e).__name__,
            ) from e
        except BaseException:
            # Cancelled caller: the process group must not outlive the request
            await self._kill(process)
            logger.warning("command.cancelled", pid=process.pid)
            raise

        output = combine_output(_decode(stdout_bytes), _decode(stderr_bytes))
        end_time = datetime.now(timezone.utc)

        logger.info(
            "command.completed",
            pid=process.pid,
            exit_code=process.returncode,
            duration_ms=round((end_time - start_time).total_seconds() * 1000, 2),
        )
        return ExecutionOutcome(start_time=start_time, end_time=end_time, output=output, exit_code=process.returncode)

    async def _kill(self, process: asyncio.subprocess.Process) -> None:
        """Kill the process (group) and reap it even while the caller is being cancelled."""
        self.adapter.terminate(process)
        await asyncio.shield(process.wait())
