"""Subcommand implementations."""

import argparse
import asyncio
import logging
import os
from pathlib import Path

from termgate import __version__
from termgate.application.services import AuditService, CommandStatus
from termgate.composition import create_container
from termgate.config import GatewaySettings
from termgate.domain import (
    AuditEventType,
    AuditQuery,
    ClientInfo,
    ConnectionType,
    RuleKind,
    SessionId,
    UserId,
    ValidationError,
)
from termgate.infrastructure.repositories import AuditIntegrityError, JsonlAuditLog

from .display import (
    console,
    display_banner,
    display_check_result,
    display_events,
    display_outcome,
    display_stats,
    display_summary,
    display_terminals,
)

logger = logging.getLogger(__name__)

CWD_ENV = "TERMGATE_CWD"
PROMPT = "[bold green]$[/bold green] "
EXIT_WORDS = frozenset({"exit", "quit", "logout"})


def run_check(args: argparse.Namespace, settings: GatewaySettings) -> int:
    rules = {
        RuleKind.COMMAND: settings.command_rule.to_rule(),
        RuleKind.HOST: settings.host_rule.to_rule(),
        RuleKind.PATH: settings.path_rule.to_rule(),
    }
    rule = rules[RuleKind(args.kind)]
    result = rule.check(args.value)

    message = rule.message
    if not result:
        message = ValidationError.from_result(result, rule.message).user_message
    display_check_result(args.kind, args.value, result, message)
    return 0 if result else 1


def _open_audit_file(args: argparse.Namespace, settings: GatewaySettings) -> JsonlAuditLog | None:
    path = args.file or settings.audit.path
    if path is None:
        console.print("[red]No audit file configured.[/red] Use --file or set audit.path.")
        return None
    return JsonlAuditLog(path, fsync=False)


def build_query(args: argparse.Namespace) -> AuditQuery:
    return AuditQuery(
        event_type=AuditEventType(args.event_type) if args.event_type else None,
        connection_type=ConnectionType(args.connection_type) if args.connection_type else None,
        user_id=UserId(args.user) if args.user else None,
        terminal_identifier=args.terminal,
        session_id=SessionId(args.session) if args.session else None,
        rule=args.rule,
        failed_commands_only=args.failed,
        created_from=args.created_from,
        created_until=args.created_until,
        newest_first=not args.oldest_first,
        limit=args.limit,
    )


def run_audit(args: argparse.Namespace, settings: GatewaySettings) -> int:
    try:
        log = _open_audit_file(args, settings)
    except AuditIntegrityError as e:
        console.print(f"[red]{e}[/red]")
        return 1
    if log is None:
        return 2

    audit = AuditService(log, settings.audit.to_settings())
    if args.terminals:
        display_terminals(audit.terminal_identifiers())
    elif args.stats:
        display_stats(audit.stats())
    else:
        display_events(audit.query(build_query(args)))
    return 0


def run_verify(args: argparse.Namespace, settings: GatewaySettings) -> int:
    try:
        log = _open_audit_file(args, settings)
        if log is None:
            return 2
        count = log.verify()
    except AuditIntegrityError as e:
        console.print(f"[red]✗ {e}[/red]")
        return 1

    console.print(f"[green]✓[/green] {count} records verified in {log.path}")
    return 0


def resolve_cwd(path: str | None) -> str:
    """Working directory from the argument, ``$TERMGATE_CWD`` or the current directory."""
    return str(Path(path or os.environ.get(CWD_ENV) or os.getcwd()).resolve())


async def run_shell(args: argparse.Namespace, settings: GatewaySettings) -> int:
    cwd = resolve_cwd(args.path)
    container = create_container(settings=settings, cwd=cwd)
    gateway = container.gateway

    outcome = await gateway.connect_from(
        container.connection_data(),
        user_id=UserId.local_user(),
        terminal_identifier=args.terminal,
        client=ClientInfo(user_agent=f"termgate-cli/{__version__}"),
    )
    if outcome.session is None:
        console.print(f"[red]{outcome.message}[/red]")
        return 1

    session = outcome.session
    display_banner(session)
    try:
        while session.is_active:
            try:
                line = await asyncio.to_thread(console.input, PROMPT)
            except EOFError:
                break
            if not line.strip():
                continue
            if line.strip() in EXIT_WORDS:
                break

            result = await gateway.execute(session.id, line)
            display_outcome(result)
            if result.status is CommandStatus.DISCONNECTED:
                break
    finally:
        if session.is_active:
            await gateway.disconnect(session.id)
        pending = container.audit_service.retry_pending()
        if container.audit_service.pending_count:
            logger.warning(
                "Audit events not persisted pending=%d", container.audit_service.pending_count
            )
        elif pending:
            logger.info("Flushed pending audit events count=%d", pending)

    display_summary(session, container.audit_service.session_summary(session.id))
    return 0
