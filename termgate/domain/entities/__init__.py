"""Domain entities - objects with identity and lifecycle."""

from .audit_event import AuditEvent
from .session import Session, SessionState

__all__ = [
    "AuditEvent",
    "Session",
    "SessionState",
]
