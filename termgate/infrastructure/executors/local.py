"""Local process executor."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from termgate.domain import (
    CommandResult,
    ConnectionConfig,
    ConnectionType,
    ExecutorTimeout,
    TransportFailure,
)
from termgate.infrastructure.config import DetectedShell, ShellDetector

from .env import build_safe_environment

logger = logging.getLogger(__name__)


@dataclass
class LocalHandle:
    """Open local "connection": a working directory and environment."""

    cwd: str | None
    environment: dict[str, str]
    login_shell: DetectedShell | None = None
    closed: bool = False
    running: set[asyncio.subprocess.Process] = field(default_factory=set)


class LocalProcessExecutor:
    """Runs approved commands as child processes of this server.

    Each command gets a fresh process. Output is stdout and stderr merged.
    """

    def __init__(
        self,
        default_cwd: str | None = None,
        shell_detector: ShellDetector | None = None,
    ) -> None:
        self._default_cwd = default_cwd
        self._shell_detector = shell_detector or ShellDetector()

    async def connect(self, config: ConnectionConfig) -> LocalHandle:
        if config.connection_type is not ConnectionType.LOCAL:
            raise TransportFailure(
                f"{config.connection_type.label} connections need a dedicated executor"
            )

        cwd = config.working_directory or self._default_cwd
        if cwd is not None and not Path(cwd).is_dir():
            raise TransportFailure(f"Working directory does not exist: {cwd}")

        login_shell = None
        if config.login_shell:
            login_shell = self._shell_detector.get_default_shell()
            if login_shell is None:
                raise TransportFailure("No login shell available on this system")

        return LocalHandle(cwd=cwd, environment=build_safe_environment(), login_shell=login_shell)

    async def execute(self, handle: LocalHandle, command: str, timeout: float) -> CommandResult:
        if handle.closed:
            raise TransportFailure("Handle is closed")

        start = time.monotonic()
        try:
            if handle.login_shell is not None:
                process = await asyncio.create_subprocess_exec(
                    *handle.login_shell.to_command_list(command),
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.STDOUT,
                    cwd=handle.cwd,
                    env=handle.environment,
                )
            else:
                process = await asyncio.create_subprocess_shell(
                    command,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.STDOUT,
                    cwd=handle.cwd,
                    env=handle.environment,
                )
        except OSError as e:
            raise TransportFailure(f"Failed to start process: {e}") from e

        handle.running.add(process)
        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout)
        except TimeoutError:
            await self._kill(process)
            raise ExecutorTimeout(timeout, command) from None
        except asyncio.CancelledError:
            await self._kill(process)
            raise
        finally:
            handle.running.discard(process)

        return CommandResult(
            exit_code=process.returncode if process.returncode is not None else -1,
            output=(stdout or b"").decode("utf-8", errors="replace"),
            duration_seconds=time.monotonic() - start,
        )

    async def disconnect(self, handle: LocalHandle) -> None:
        handle.closed = True
        for process in list(handle.running):
            await self._kill(process)

    async def _kill(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        try:
            process.kill()
        except ProcessLookupError:
            return
        await process.wait()
        logger.info("Killed process pid=%s", process.pid)
