"""Audit log query predicate."""

from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING

from .audit_event_type import AuditEventType
from .connection_type import ConnectionType
from .session_id import SessionId
from .user_id import UserId

if TYPE_CHECKING:
    from ..entities.audit_event import AuditEvent


def _on_or_after(timestamp: datetime, bound: date) -> bool:
    if isinstance(bound, datetime):
        return timestamp >= bound
    return timestamp.date() >= bound


def _on_or_before(timestamp: datetime, bound: date) -> bool:
    if isinstance(bound, datetime):
        return timestamp <= bound
    return timestamp.date() <= bound


@dataclass(frozen=True, slots=True)
class AuditQuery:
    """Filter and ordering for reading the audit log.

    Every predicate left as None (or False) matches everything. Date
    bounds are inclusive; a plain ``date`` compares against the calendar
    day of the event, a ``datetime`` against the exact timestamp.
    """

    event_type: AuditEventType | None = None
    connection_type: ConnectionType | None = None
    user_id: UserId | None = None
    terminal_identifier: str | None = None
    session_id: SessionId | None = None
    rule: str | None = None
    failed_commands_only: bool = False
    created_from: date | None = None
    created_until: date | None = None
    newest_first: bool = True
    limit: int | None = None

    def __post_init__(self) -> None:
        if self.limit is not None and self.limit < 1:
            raise ValueError("Limit must be positive")

    def matches(self, event: "AuditEvent") -> bool:
        """Check a single event against every predicate."""
        if self.event_type is not None and event.event_type != self.event_type:
            return False
        if self.connection_type is not None and event.connection_type != self.connection_type:
            return False
        if self.user_id is not None and event.user_id != self.user_id:
            return False
        if (
            self.terminal_identifier is not None
            and event.terminal_identifier != self.terminal_identifier
        ):
            return False
        if self.session_id is not None and event.session_id != self.session_id:
            return False
        if self.rule is not None and event.rule != self.rule:
            return False
        if self.failed_commands_only and not event.is_failed_command:
            return False
        if self.created_from is not None and not _on_or_after(event.timestamp, self.created_from):
            return False
        if self.created_until is not None and not _on_or_before(
            event.timestamp, self.created_until
        ):
            return False
        return True

    def apply(self, events: "list[AuditEvent]") -> "list[AuditEvent]":
        """Filter, order and limit events given in append order."""
        selected = [event for event in events if self.matches(event)]
        # Stable sort keeps append order for equal timestamps
        selected.sort(key=lambda event: event.timestamp)
        if self.newest_first:
            selected.reverse()
        if self.limit is not None:
            selected = selected[: self.limit]
        return selected
