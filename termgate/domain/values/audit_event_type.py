"""Audit event type enumeration."""

from enum import StrEnum


class AuditEventType(StrEnum):
    """Kinds of session-affecting actions recorded in the audit log."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    COMMAND = "command"
    OUTPUT = "output"
    ERROR = "error"
    BLOCKED = "blocked"

    @property
    def is_connection_event(self) -> bool:
        return self in (AuditEventType.CONNECTED, AuditEventType.DISCONNECTED)
