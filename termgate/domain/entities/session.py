"""Terminal session entity."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum
from typing import Generic, TypeVar

from ..errors import SessionStateError
from ..values import ClientInfo, ConnectionConfig, ConnectionType, SessionId, UserId

HandleT = TypeVar("HandleT")


class SessionState(StrEnum):
    """Lifecycle states. DISCONNECTED is terminal."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    EXECUTING = "executing"
    DISCONNECTED = "disconnected"


@dataclass
class Session(Generic[HandleT]):
    """State and counters of one connect-to-disconnect terminal lifetime.

    Pure domain logic: every transition is an explicit method that refuses
    to run from the wrong state. Counters freeze once disconnected.
    """

    id: SessionId
    config: ConnectionConfig
    started_at: datetime
    user_id: UserId | None = None
    terminal_identifier: str | None = None
    client: ClientInfo = field(default_factory=ClientInfo)
    state: SessionState = SessionState.CONNECTING
    ended_at: datetime | None = None
    commands_run: int = 0
    errors_count: int = 0
    handle: HandleT | None = None

    @property
    def connection_type(self) -> ConnectionType:
        return self.config.connection_type

    @property
    def is_active(self) -> bool:
        return self.state is not SessionState.DISCONNECTED

    @property
    def duration(self) -> timedelta | None:
        """Time between start and end, None while still active."""
        if self.ended_at is None:
            return None
        return self.ended_at - self.started_at

    def _require(self, *states: SessionState) -> None:
        if self.state not in states:
            allowed = ", ".join(str(s) for s in states)
            raise SessionStateError(
                f"Session {self.id} is {self.state}, expected one of: {allowed}"
            )

    def mark_connected(self, handle: HandleT) -> None:
        """CONNECTING -> CONNECTED, binding the executor handle."""
        self._require(SessionState.CONNECTING)
        self.handle = handle
        self.state = SessionState.CONNECTED

    def begin_command(self) -> None:
        """CONNECTED -> EXECUTING."""
        self._require(SessionState.CONNECTED)
        self.state = SessionState.EXECUTING

    def complete_command(self) -> None:
        """EXECUTING -> CONNECTED, counting the command as run."""
        self._require(SessionState.EXECUTING)
        self.commands_run += 1
        self.state = SessionState.CONNECTED

    def abort_command(self) -> None:
        """EXECUTING -> CONNECTED without counting the command."""
        self._require(SessionState.EXECUTING)
        self.state = SessionState.CONNECTED

    def record_error(self) -> None:
        self._require(SessionState.CONNECTED, SessionState.EXECUTING)
        self.errors_count += 1

    def finalize(self, now: datetime) -> None:
        """Move to DISCONNECTED, set ``ended_at`` and freeze counters."""
        if self.state is SessionState.DISCONNECTED:
            raise SessionStateError(f"Session {self.id} is already disconnected")
        self.ended_at = max(now, self.started_at)
        self.state = SessionState.DISCONNECTED
