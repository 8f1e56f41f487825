"""Connection configuration value object."""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from .connection_type import ConnectionType

# Business rules
DEFAULT_COMMAND_TIMEOUT = 10.0  # seconds
MIN_COMMAND_TIMEOUT = 1.0
MIN_PORT = 1
MAX_PORT = 65535


class AuthMethod(StrEnum):
    """How an SSH connection authenticates."""

    NONE = "none"
    PASSWORD = "password"
    KEY = "key"


@dataclass(frozen=True, slots=True)
class ConnectionConfig:
    """Everything needed to open a terminal connection (value object).

    Only structural rules are enforced here. Host and path safety is
    checked by the validation rules before a session is created.
    The credential itself never lives here, only a reference to it.
    """

    connection_type: ConnectionType = ConnectionType.LOCAL
    host: str | None = None
    port: int | None = None
    username: str | None = None
    auth_method: AuthMethod = AuthMethod.NONE
    credential_reference: str | None = field(default=None, repr=False)
    working_directory: str | None = None
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT
    login_shell: bool = False

    def __post_init__(self) -> None:
        if self.command_timeout < MIN_COMMAND_TIMEOUT:
            raise ValueError("Command timeout must be at least 1 second")
        if self.port is not None and not MIN_PORT <= self.port <= MAX_PORT:
            raise ValueError(f"Port must be between {MIN_PORT} and {MAX_PORT}")

        if self.connection_type.requires_credentials:
            if not self.host:
                raise ValueError(f"Host is required for {self.connection_type} connections")
            if not self.username:
                raise ValueError(f"Username is required for {self.connection_type} connections")
            if self.auth_method is AuthMethod.NONE or not self.credential_reference:
                raise ValueError("Either password or private key is required for SSH connections")

    @property
    def effective_port(self) -> int | None:
        """Configured port, or the default for the connection type."""
        return self.port if self.port is not None else self.connection_type.default_port

    @property
    def uses_key_authentication(self) -> bool:
        return self.auth_method is AuthMethod.KEY

    @classmethod
    def local(
        cls,
        working_directory: str | None = None,
        command_timeout: float = DEFAULT_COMMAND_TIMEOUT,
        login_shell: bool = False,
    ) -> "ConnectionConfig":
        """Create a local connection configuration."""
        return cls(
            connection_type=ConnectionType.LOCAL,
            working_directory=working_directory,
            command_timeout=command_timeout,
            login_shell=login_shell,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConnectionConfig":
        """Create from a configuration mapping.

        Accepts the keys written by ``to_dict`` plus ``type``,
        ``timeout`` and ``credential_reference``.
        """
        return cls(
            connection_type=ConnectionType(data.get("connection_type") or data.get("type", "local")),
            host=data.get("host"),
            port=data.get("port"),
            username=data.get("username"),
            auth_method=AuthMethod(data.get("auth_method", "none")),
            credential_reference=data.get("credential_reference"),
            working_directory=data.get("working_directory"),
            command_timeout=float(
                data.get("command_timeout", data.get("timeout", DEFAULT_COMMAND_TIMEOUT))
            ),
            login_shell=bool(data.get("login_shell", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a mapping, excluding the credential reference."""
        return {
            "connection_type": str(self.connection_type),
            "host": self.host,
            "port": self.port,
            "username": self.username,
            "auth_method": str(self.auth_method),
            "working_directory": self.working_directory,
            "command_timeout": self.command_timeout,
            "login_shell": self.login_shell,
            "uses_key_auth": self.uses_key_authentication,
        }
