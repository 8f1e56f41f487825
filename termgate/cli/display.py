"""Display utilities for the command line."""

import sys

from rich.console import Console
from rich.table import Table

from termgate import __version__
from termgate.application.services import AuditStats, CommandOutcome, CommandStatus, SessionSummary
from termgate.domain import AuditEvent, AuditEventType, Session, ValidationResult

# Force UTF-8 for Windows console
if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8", errors="replace")

console = Console()

EVENT_STYLES = {
    AuditEventType.CONNECTED: "green",
    AuditEventType.DISCONNECTED: "dim",
    AuditEventType.COMMAND: "cyan",
    AuditEventType.OUTPUT: "white",
    AuditEventType.ERROR: "red",
    AuditEventType.BLOCKED: "bold red",
}

MAX_CELL = 60


def _clip(text: str | None, width: int = MAX_CELL) -> str:
    if not text:
        return ""
    text = text.replace("\n", " ")
    return text if len(text) <= width else text[: width - 1] + "…"


def display_banner(session: Session) -> None:
    config = session.config
    console.print(f"[bold cyan]termgate[/bold cyan] [dim]v{__version__}[/dim]")
    console.print(
        f"[dim]session {session.id} · {config.connection_type.label}"
        f" · cwd {config.working_directory or '.'}[/dim]"
    )
    console.print("[dim]Type 'exit' to end the session.[/dim]\n")


def display_check_result(kind: str, value: str, result: ValidationResult, message: str) -> None:
    if result:
        console.print(f"[green]✓[/green] {kind} [bold]{value!r}[/bold] is valid")
    else:
        console.print(f"[red]✗[/red] {kind} [bold]{value!r}[/bold] rejected ({result.reason})")
        console.print(f"  [dim]{message}[/dim]")


def display_events(events: list[AuditEvent]) -> None:
    if not events:
        console.print("[dim]No audit events.[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Time", no_wrap=True)
    table.add_column("Type")
    table.add_column("Conn")
    table.add_column("User")
    table.add_column("Terminal")
    table.add_column("Command")
    table.add_column("Exit", justify="right")
    table.add_column("Detail")

    for event in events:
        style = EVENT_STYLES[event.event_type]
        detail = event.rule or event.reason or _clip(event.output, 30)
        table.add_row(
            event.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            f"[{style}]{event.event_type}[/{style}]",
            str(event.connection_type),
            str(event.user_id or ""),
            event.terminal_identifier or "",
            _clip(event.command),
            "" if event.exit_code is None else str(event.exit_code),
            detail,
        )

    console.print(table)


def display_terminals(identifiers: list[str]) -> None:
    if not identifiers:
        console.print("[dim]No terminals recorded.[/dim]")
        return
    for identifier in identifiers:
        console.print(identifier)


def display_stats(stats: AuditStats) -> None:
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold")
    table.add_column(justify="right")
    table.add_row("Total entries", str(stats.total))
    table.add_row("Today", str(stats.today))
    table.add_row("Commands", str(stats.commands))
    table.add_row("Errors", str(stats.errors))
    console.print(table)


def display_outcome(outcome: CommandOutcome) -> None:
    if outcome.status is CommandStatus.EXECUTED and outcome.result is not None:
        result = outcome.result
        if result.output:
            end = "" if result.output.endswith("\n") else "\n"
            console.print(result.output, end=end, markup=False, highlight=False)
        if not result.is_successful:
            console.print(
                f"[yellow]exit {result.exit_code}[/yellow] [dim]{result.formatted_duration}[/dim]"
            )
        return

    style = "red" if outcome.status is CommandStatus.BLOCKED else "bold red"
    console.print(f"[{style}]{outcome.message}[/{style}]")


def display_summary(session: Session, summary: SessionSummary) -> None:
    duration = session.duration
    console.print(
        f"\n[dim]Session ended: {session.commands_run} commands run,"
        f" {session.errors_count} errors, {summary.blocked_count} blocked"
        f"{f', {duration.total_seconds():.1f}s' if duration is not None else ''}[/dim]"
    )
