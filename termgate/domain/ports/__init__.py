"""Domain ports - interfaces for infrastructure to implement."""

from .audit_log import AuditLogPort
from .executor_port import ExecutorPort
from .session_repository import SessionRepository

__all__ = [
    "AuditLogPort",
    "ExecutorPort",
    "SessionRepository",
]
