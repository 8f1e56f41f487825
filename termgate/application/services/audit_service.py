"""Audit service - recording policy on top of an audit log store."""

import dataclasses
import logging
import threading
from collections import deque
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from termgate.domain import (
    AuditEvent,
    AuditEventType,
    AuditLogPort,
    AuditQuery,
    AuditWriteFailure,
    SessionId,
)

logger = logging.getLogger(__name__)

# Business rules
DEFAULT_MAX_OUTPUT_LENGTH = 10_000
TRUNCATION_MARKER = "\n... [truncated]"
MAX_PENDING_EVENTS = 1_000


@dataclass(frozen=True, slots=True)
class AuditSettings:
    """What gets written to the audit log.

    Blocked commands are security events and are always recorded while
    auditing is enabled, regardless of the per-type switches and the
    terminal filter.
    """

    enabled: bool = True
    log_connections: bool = True
    log_disconnections: bool = True
    log_commands: bool = True
    log_output: bool = False
    log_errors: bool = True
    max_output_length: int = DEFAULT_MAX_OUTPUT_LENGTH
    truncate_output: bool = True
    terminals: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.max_output_length < 1:
            raise ValueError("Max output length must be positive")

    def should_log(self, event: AuditEvent) -> bool:
        if not self.enabled:
            return False
        if event.event_type is AuditEventType.BLOCKED:
            return True
        if self.terminals and event.terminal_identifier not in self.terminals:
            return False

        switches = {
            AuditEventType.CONNECTED: self.log_connections,
            AuditEventType.DISCONNECTED: self.log_disconnections,
            AuditEventType.COMMAND: self.log_commands,
            AuditEventType.OUTPUT: self.log_output,
            AuditEventType.ERROR: self.log_errors,
        }
        return switches[event.event_type]


@dataclass(frozen=True, slots=True)
class SessionSummary:
    """Counts and bounds of one session, computed from its audit events."""

    command_count: int = 0
    success_count: int = 0
    error_count: int = 0
    blocked_count: int = 0
    started_at: datetime | None = None
    ended_at: datetime | None = None

    @property
    def duration(self) -> timedelta | None:
        if self.started_at is None or self.ended_at is None:
            return None
        return self.ended_at - self.started_at


@dataclass(frozen=True, slots=True)
class AuditStats:
    """Overview numbers for the whole audit log."""

    total: int
    today: int
    commands: int
    errors: int


class AuditService:
    """Applies audit settings and shields callers from storage failures.

    ``record`` never raises on a storage failure: the event is queued for
    ``retry_pending`` and the failure is logged. It also keeps timestamps
    within a session non-decreasing.
    """

    def __init__(
        self,
        log: AuditLogPort,
        settings: AuditSettings | None = None,
        max_pending: int = MAX_PENDING_EVENTS,
    ) -> None:
        self._log = log
        self._settings = settings or AuditSettings()
        self._lock = threading.Lock()
        self._last_timestamps: dict[SessionId, datetime] = {}
        if max_pending < 1:
            raise ValueError("max_pending must be positive")
        self._max_pending = max_pending
        self._pending: deque[AuditEvent] = deque()
        self._write_failures = 0
        self._dropped_events = 0

    @property
    def settings(self) -> AuditSettings:
        return self._settings

    @property
    def log(self) -> AuditLogPort:
        return self._log

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def write_failures(self) -> int:
        return self._write_failures

    @property
    def dropped_events(self) -> int:
        """Queued events discarded because the retry queue was full."""
        return self._dropped_events

    def record(self, event: AuditEvent) -> bool:
        """Record an event if the settings allow it.

        Queued events are written first, so the store receives events in
        the order they were recorded.

        Returns:
            True if the event was persisted, False if it was skipped or
            queued after a write failure.
        """
        if not self._settings.should_log(event):
            return False

        event = self._truncate(event)

        with self._lock:
            last = self._last_timestamps.get(event.session_id)
            if last is not None and event.timestamp < last:
                event = dataclasses.replace(event, timestamp=last)
            self._last_timestamps[event.session_id] = event.timestamp

            if self._pending:
                self._drain_pending()
            if self._pending:
                self._enqueue(event)
                return False

            try:
                self._log.append(event)
            except AuditWriteFailure:
                self._write_failures += 1
                self._enqueue(event)
                logger.exception(
                    "Audit write failed session_id=%s event_type=%s pending=%d",
                    event.session_id,
                    event.event_type,
                    len(self._pending),
                )
                return False

        return True

    def retry_pending(self) -> int:
        """Retry queued events in order, stopping at the first failure.

        Returns:
            Number of events written.
        """
        with self._lock:
            written = self._drain_pending()
        if written:
            logger.info("Audit retry wrote events=%d", written)
        return written

    def _drain_pending(self) -> int:
        # Caller holds self._lock
        written = 0
        while self._pending:
            try:
                self._log.append(self._pending[0])
            except AuditWriteFailure as e:
                self._write_failures += 1
                logger.warning("Audit retry failed pending=%d error=%s", len(self._pending), e)
                break
            self._pending.popleft()
            written += 1
        return written

    def _enqueue(self, event: AuditEvent) -> None:
        if len(self._pending) >= self._max_pending:
            dropped = self._pending.popleft()
            self._dropped_events += 1
            logger.warning(
                "Audit queue full, dropping event session_id=%s event_type=%s timestamp=%s",
                dropped.session_id,
                dropped.event_type,
                dropped.timestamp.isoformat(),
            )
        self._pending.append(event)

    def forget(self, session_id: SessionId) -> None:
        """Drop per-session bookkeeping once a session is finished."""
        with self._lock:
            self._last_timestamps.pop(session_id, None)

    def _truncate(self, event: AuditEvent) -> AuditEvent:
        limit = self._settings.max_output_length
        if not self._settings.truncate_output or event.output is None or len(event.output) <= limit:
            return event
        return dataclasses.replace(event, output=event.output[:limit] + TRUNCATION_MARKER)

    def query(self, query: AuditQuery | None = None) -> list[AuditEvent]:
        return self._log.query(query)

    def terminal_identifiers(self) -> list[str]:
        return self._log.terminal_identifiers()

    def session_events(self, session_id: SessionId) -> list[AuditEvent]:
        """All events of one session, oldest first."""
        return self._log.query(AuditQuery(session_id=session_id, newest_first=False))

    def session_summary(self, session_id: SessionId) -> SessionSummary:
        events = self.session_events(session_id)
        if not events:
            return SessionSummary()

        commands = [e for e in events if e.event_type is AuditEventType.COMMAND]
        connected = next((e for e in events if e.event_type is AuditEventType.CONNECTED), None)
        disconnected = next(
            (e for e in events if e.event_type is AuditEventType.DISCONNECTED), None
        )
        return SessionSummary(
            command_count=len(commands),
            success_count=sum(1 for e in commands if e.is_successful_command),
            error_count=sum(1 for e in commands if e.is_failed_command),
            blocked_count=sum(1 for e in events if e.event_type is AuditEventType.BLOCKED),
            started_at=connected.timestamp if connected else None,
            ended_at=disconnected.timestamp if disconnected else None,
        )

    def stats(self, now: datetime | None = None) -> AuditStats:
        now = now or datetime.now(UTC)
        events = self._log.query()
        today = now.date()
        return AuditStats(
            total=len(events),
            today=sum(1 for e in events if e.timestamp.date() == today),
            commands=sum(1 for e in events if e.event_type is AuditEventType.COMMAND),
            errors=sum(1 for e in events if e.event_type is AuditEventType.ERROR),
        )
