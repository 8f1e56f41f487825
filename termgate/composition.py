"""Composition root - the ONLY place where dependencies are wired."""

import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from termgate.application.services import AuditService, GatewayFacade
from termgate.config import GatewaySettings, load_config
from termgate.container import Container
from termgate.domain import AuditLogPort, ExecutorPort
from termgate.infrastructure.config import ShellDetector
from termgate.infrastructure.executors import LocalProcessExecutor
from termgate.infrastructure.repositories import (
    InMemoryAuditLog,
    InMemorySessionRepository,
    JsonlAuditLog,
)

logger = logging.getLogger(__name__)


def create_audit_log(settings: GatewaySettings) -> AuditLogPort:
    """JSON-lines store when a path is configured, in-memory otherwise."""
    if settings.audit.path is None:
        return InMemoryAuditLog()
    logger.info("Using audit file path=%s fsync=%s", settings.audit.path, settings.audit.fsync)
    return JsonlAuditLog(settings.audit.path, fsync=settings.audit.fsync)


def create_container(
    config_path: Path | str | None = None,
    cwd: str | None = None,
    settings: GatewaySettings | None = None,
    executor: ExecutorPort | None = None,
    audit_log: AuditLogPort | None = None,
    clock: Callable[[], datetime] | None = None,
) -> Container:
    """Create the dependency container with all wired dependencies.

    This is the composition root - the single place where all
    dependencies are created and wired together.

    Args:
        config_path: Path to config file, ignored when ``settings`` is given.
        cwd: Default working directory for local sessions.
        settings: Already loaded settings.
        executor: Executor to use instead of the local process executor,
            required for SSH connections.
        audit_log: Audit store to use instead of the configured one.
        clock: Time source for sessions and audit events.

    Returns:
        Fully wired dependency container.
    """
    settings = settings or load_config(config_path)

    policy = settings.to_policy()
    audit_log = audit_log if audit_log is not None else create_audit_log(settings)
    audit_service = AuditService(audit_log, settings.audit.to_settings())
    executor = executor or LocalProcessExecutor(default_cwd=cwd, shell_detector=ShellDetector())
    session_repository = InMemorySessionRepository()

    gateway = GatewayFacade(
        executor=executor,
        audit=audit_service,
        session_repository=session_repository,
        policy=policy,
        command_rule=settings.command_rule.to_rule(),
        host_rule=settings.host_rule.to_rule(),
        path_rule=settings.path_rule.to_rule(),
        rate_limit=settings.rate_limit.to_config(),
        enabled=settings.enabled,
        clock=clock,
    )

    return Container(
        gateway=gateway,
        audit_service=audit_service,
        executor=executor,
        audit_log=audit_log,
        session_repository=session_repository,
        settings=settings,
        policy=policy,
        cwd=cwd,
    )
