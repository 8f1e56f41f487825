"""In-memory audit log."""

import threading

from termgate.domain import AuditEvent, AuditQuery


class InMemoryAuditLog:
    """Audit log held in a list guarded by a lock.

    Not durable; meant for tests and for running without an audit file.
    """

    def __init__(self) -> None:
        self._events: list[AuditEvent] = []
        self._lock = threading.Lock()

    def append(self, event: AuditEvent) -> None:
        with self._lock:
            self._events.append(event)

    def query(self, query: AuditQuery | None = None) -> list[AuditEvent]:
        with self._lock:
            snapshot = list(self._events)
        return (query or AuditQuery()).apply(snapshot)

    def terminal_identifiers(self) -> list[str]:
        with self._lock:
            identifiers = {e.terminal_identifier for e in self._events if e.terminal_identifier}
        return sorted(identifiers)

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
