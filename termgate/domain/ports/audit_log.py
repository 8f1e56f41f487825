"""Audit log port - interface for audit storage."""

from typing import Protocol

from ..entities import AuditEvent
from ..values import AuditQuery


class AuditLogPort(Protocol):
    """Append-only, queryable audit store.

    ``append`` must be safe under concurrent writers and never touch
    earlier entries. Implementations raise ``AuditWriteFailure`` when an
    event cannot be persisted.
    """

    def append(self, event: AuditEvent) -> None:
        """Append one event."""
        ...

    def query(self, query: AuditQuery | None = None) -> list[AuditEvent]:
        """Return matching events, newest first by default."""
        ...

    def terminal_identifiers(self) -> list[str]:
        """Distinct terminal identifiers present in the store."""
        ...

    def __len__(self) -> int:
        """Number of stored events."""
        ...
