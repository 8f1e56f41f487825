"""Domain value objects - immutable data structures."""

from .audit_event_type import AuditEventType
from .audit_query import AuditQuery
from .client_info import ClientInfo
from .command_result import CommandResult
from .command_rule import DANGEROUS_TOKENS, CommandRule, extract_base_command
from .connection_config import AuthMethod, ConnectionConfig
from .connection_type import ConnectionType
from .host_rule import LOCALHOST_ALIASES, HostRule
from .path_rule import TRAVERSAL_PATTERNS, PathRule
from .rate_limit_config import RateLimitConfig
from .session_id import SessionId
from .user_id import UserId
from .validation_result import RuleKind, ValidationResult, ValidationRule

__all__ = [
    "SessionId",
    "UserId",
    "ConnectionType",
    "ConnectionConfig",
    "AuthMethod",
    "ClientInfo",
    "CommandResult",
    "CommandRule",
    "HostRule",
    "PathRule",
    "RateLimitConfig",
    "RuleKind",
    "ValidationResult",
    "ValidationRule",
    "DANGEROUS_TOKENS",
    "LOCALHOST_ALIASES",
    "TRAVERSAL_PATTERNS",
    "extract_base_command",
    "AuditEventType",
    "AuditQuery",
]
