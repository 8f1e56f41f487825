"""Command line interface."""

from .args import build_parser, parse_args
from .commands import run_audit, run_check, run_shell, run_verify

__all__ = [
    "build_parser",
    "parse_args",
    "run_audit",
    "run_check",
    "run_shell",
    "run_verify",
]
