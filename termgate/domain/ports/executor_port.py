"""Executor port - interface for process and SSH transports."""

from typing import Any, Protocol

from ..values import CommandResult, ConnectionConfig


class ExecutorPort(Protocol):
    """Protocol for running validated commands.

    Implementations raise ``ExecutorTimeout`` or ``TransportFailure``
    (from ``termgate.domain.errors``); a non-zero exit code is returned,
    not raised.
    """

    async def connect(self, config: ConnectionConfig) -> Any:
        """Open a connection and return an opaque handle."""
        ...

    async def execute(self, handle: Any, command: str, timeout: float) -> CommandResult:
        """Run one command on an open handle."""
        ...

    async def disconnect(self, handle: Any) -> None:
        """Release the handle."""
        ...
