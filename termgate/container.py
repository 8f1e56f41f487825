"""Dependency container - holds all wired dependencies."""

from dataclasses import dataclass
from typing import Any

from termgate.application.services import AuditService, GatewayFacade
from termgate.config import GatewaySettings
from termgate.domain import AuditLogPort, CommandPolicy, ConnectionConfig, ExecutorPort
from termgate.domain.ports import SessionRepository


@dataclass(frozen=True)
class Container:
    """Immutable dependency container.

    All dependencies are wired at startup and cannot be modified.
    """

    # Services
    gateway: GatewayFacade
    audit_service: AuditService

    # Ports
    executor: ExecutorPort
    audit_log: AuditLogPort
    session_repository: SessionRepository

    # Configuration
    settings: GatewaySettings
    policy: CommandPolicy

    # Working directory
    cwd: str | None = None

    def connection_config(self) -> ConnectionConfig:
        """Connection for a new session, using the container's working directory.

        Raises:
            ValueError: If the configured connection is inconsistent.
        """
        return ConnectionConfig.from_dict(self.connection_data())

    def connection_data(self) -> dict[str, Any]:
        """Raw connection settings, using the container's working directory."""
        working_directory = self.settings.connection.working_directory or self.cwd
        return self.settings.connection_data(working_directory)
