"""Command line argument parsing."""

import argparse
from datetime import UTC, date, datetime

from termgate import __version__
from termgate.domain import AuditEventType, ConnectionType, RuleKind


def parse_when(value: str) -> date:
    """Parse an ISO date or datetime. Naive datetimes are taken as UTC."""
    try:
        if "T" not in value and " " not in value:
            return date.fromisoformat(value)
        parsed = datetime.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid date or datetime: {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}") from e
    if number < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="termgate",
        description="termgate - validated and audited terminal sessions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Path to config file (default: $TERMGATE_CONFIG_PATH or termgate.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show detailed logs",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser("check", help="Check a value against a validation rule")
    check.add_argument("kind", choices=[str(kind) for kind in RuleKind])
    check.add_argument("value", help="Command, host or path to check")

    audit = subparsers.add_parser("audit", help="Query the audit log")
    audit.add_argument("--file", default=None, help="Audit file (default: from config)")
    audit.add_argument("--event-type", choices=[str(t) for t in AuditEventType])
    audit.add_argument("--connection-type", choices=[str(t) for t in ConnectionType])
    audit.add_argument("--user", default=None, help="User identifier")
    audit.add_argument("--terminal", default=None, help="Terminal identifier")
    audit.add_argument("--session", default=None, help="Session ID")
    audit.add_argument("--rule", default=None, help="Violated rule of blocked events")
    audit.add_argument("--failed", action="store_true", help="Only failed commands")
    audit.add_argument("--from", dest="created_from", type=parse_when, default=None)
    audit.add_argument("--until", dest="created_until", type=parse_when, default=None)
    audit.add_argument("--oldest-first", action="store_true", help="Oldest events first")
    audit.add_argument("--limit", type=positive_int, default=50)
    audit.add_argument(
        "--terminals",
        action="store_true",
        help="List the distinct terminal identifiers instead of events",
    )
    audit.add_argument("--stats", action="store_true", help="Show audit totals")

    verify = subparsers.add_parser("verify", help="Verify the audit file hash chain")
    verify.add_argument("--file", default=None, help="Audit file (default: from config)")

    shell = subparsers.add_parser("shell", help="Interactive local session")
    shell.add_argument(
        "path",
        nargs="?",
        default=None,
        help="Working directory (default: current directory)",
    )
    shell.add_argument("--terminal", default="cli", help="Terminal identifier to record")

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed arguments namespace; ``command`` names the subcommand.
    """
    return build_parser().parse_args(argv)
