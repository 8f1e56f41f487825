"""Infrastructure repositories - data storage implementations."""

from .in_memory_audit_log import InMemoryAuditLog
from .in_memory_session import InMemorySessionRepository
from .jsonl_audit_log import AuditIntegrityError, JsonlAuditLog

__all__ = [
    "AuditIntegrityError",
    "InMemoryAuditLog",
    "InMemorySessionRepository",
    "JsonlAuditLog",
]
