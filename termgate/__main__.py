"""Entry point: ``termgate`` / ``python -m termgate``."""

import asyncio
import sys

from termgate.cli import parse_args, run_audit, run_check, run_shell, run_verify
from termgate.cli.display import console
from termgate.config import load_config
from termgate.logging_setup import setup_logging


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = load_config(args.config)
    except ValueError as e:
        console.print(f"[red]Invalid configuration:[/red] {e}")
        return 2

    if args.command == "check":
        return run_check(args, settings)
    if args.command == "audit":
        return run_audit(args, settings)
    if args.command == "verify":
        return run_verify(args, settings)

    try:
        return asyncio.run(run_shell(args, settings))
    except KeyboardInterrupt:
        console.print("\n[dim]Interrupted.[/dim]")
        return 130


if __name__ == "__main__":
    sys.exit(main())
