"""Audit event record."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any

from ..values import AuditEventType, ConnectionType, SessionId, UserId

RULE_KEY = "rule"
REASON_KEY = "reason"


@dataclass(frozen=True, slots=True)
class AuditEvent:
    """Immutable record of one session-affecting action.

    The session is referenced by ID only; events outlive the session.
    """

    session_id: SessionId
    event_type: AuditEventType
    connection_type: ConnectionType
    timestamp: datetime
    user_id: UserId | None = None
    terminal_identifier: str | None = None
    host: str | None = None
    port: int | None = None
    username: str | None = None
    command: str | None = None
    exit_code: int | None = None
    output: str | None = None
    ip_address: str = ""
    user_agent: str = ""
    execution_time_seconds: float | None = None
    # Excluded from the hash: the frozen copy is a MappingProxyType
    metadata: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        if self.timestamp.tzinfo is None:
            raise ValueError("Audit timestamps must be timezone-aware")
        if self.exit_code is not None and self.event_type is not AuditEventType.COMMAND:
            raise ValueError("Exit code is only recorded on command events")
        if not all(isinstance(k, str) and isinstance(v, str) for k, v in self.metadata.items()):
            raise ValueError("Metadata keys and values must be strings")
        if self.event_type is AuditEventType.BLOCKED:
            if self.command is None:
                raise ValueError("Blocked events must carry the rejected command")
            if RULE_KEY not in self.metadata:
                raise ValueError("Blocked events must name the violated rule")

        # Freeze a private copy so callers cannot mutate it afterwards
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def rule(self) -> str | None:
        """Identity of the violated rule, if any."""
        return self.metadata.get(RULE_KEY)

    @property
    def reason(self) -> str | None:
        return self.metadata.get(REASON_KEY)

    @property
    def is_successful_command(self) -> bool:
        return self.event_type is AuditEventType.COMMAND and self.exit_code == 0

    @property
    def is_failed_command(self) -> bool:
        return (
            self.event_type is AuditEventType.COMMAND
            and self.exit_code is not None
            and self.exit_code != 0
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible mapping."""
        return {
            "session_id": str(self.session_id),
            "event_type": str(self.event_type),
            "connection_type": str(self.connection_type),
            "timestamp": self.timestamp.isoformat(),
            "user_id": str(self.user_id) if self.user_id else None,
            "terminal_identifier": self.terminal_identifier,
            "host": self.host,
            "port": self.port,
            "username": self.username,
            "command": self.command,
            "exit_code": self.exit_code,
            "output": self.output,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "execution_time_seconds": self.execution_time_seconds,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AuditEvent":
        """Create from a mapping produced by ``to_dict``."""
        user_id = data.get("user_id")
        return cls(
            session_id=SessionId(data["session_id"]),
            event_type=AuditEventType(data["event_type"]),
            connection_type=ConnectionType(data["connection_type"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            user_id=UserId(user_id) if user_id else None,
            terminal_identifier=data.get("terminal_identifier"),
            host=data.get("host"),
            port=data.get("port"),
            username=data.get("username"),
            command=data.get("command"),
            exit_code=data.get("exit_code"),
            output=data.get("output"),
            ip_address=data.get("ip_address") or "",
            user_agent=data.get("user_agent") or "",
            execution_time_seconds=data.get("execution_time_seconds"),
            metadata=data.get("metadata") or {},
        )
