"""Application services - use case implementations."""

from .audit_service import AuditService, AuditSettings, AuditStats, SessionSummary
from .gateway_facade import CommandOutcome, CommandStatus, ConnectOutcome, GatewayFacade

__all__ = [
    "AuditService",
    "AuditSettings",
    "AuditStats",
    "SessionSummary",
    "CommandOutcome",
    "CommandStatus",
    "ConnectOutcome",
    "GatewayFacade",
]
