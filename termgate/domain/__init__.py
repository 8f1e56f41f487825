"""Pure domain layer - no infrastructure dependencies."""

# Value Objects
from .values import (
    DANGEROUS_TOKENS,
    LOCALHOST_ALIASES,
    TRAVERSAL_PATTERNS,
    AuditEventType,
    AuditQuery,
    AuthMethod,
    ClientInfo,
    CommandResult,
    CommandRule,
    ConnectionConfig,
    ConnectionType,
    HostRule,
    PathRule,
    RateLimitConfig,
    RuleKind,
    SessionId,
    UserId,
    ValidationResult,
    ValidationRule,
    extract_base_command,
)

# Errors
from .errors import (
    AuditWriteFailure,
    ExecutorError,
    ExecutorTimeout,
    GatewayError,
    PolicyViolation,
    RateLimitExceeded,
    SessionNotFoundError,
    SessionStateError,
    TransportFailure,
    ValidationError,
)

# Entities
from .entities import AuditEvent, Session, SessionState

# Services
from .services import CommandPolicy, PolicyResult, TokenBucketRateLimiter

# Ports
from .ports import AuditLogPort, ExecutorPort, SessionRepository

__all__ = [
    # Values
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
    # Errors
    "GatewayError",
    "ValidationError",
    "PolicyViolation",
    "RateLimitExceeded",
    "ExecutorError",
    "ExecutorTimeout",
    "TransportFailure",
    "AuditWriteFailure",
    "SessionStateError",
    "SessionNotFoundError",
    # Entities
    "AuditEvent",
    "Session",
    "SessionState",
    # Services
    "CommandPolicy",
    "PolicyResult",
    "TokenBucketRateLimiter",
    # Ports
    "AuditLogPort",
    "ExecutorPort",
    "SessionRepository",
]
