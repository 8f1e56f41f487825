"""Connection type enumeration."""

from enum import StrEnum

SSH_DEFAULT_PORT = 22


class ConnectionType(StrEnum):
    """Where commands of a session are executed."""

    LOCAL = "local"
    SSH = "ssh"

    @property
    def label(self) -> str:
        return "Local" if self is ConnectionType.LOCAL else "SSH"

    @property
    def requires_credentials(self) -> bool:
        return self is ConnectionType.SSH

    @property
    def default_port(self) -> int | None:
        return SSH_DEFAULT_PORT if self is ConnectionType.SSH else None
