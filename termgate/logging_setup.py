"""Logging configuration."""

import logging
import os
import sys

LOG_LEVEL_ENV = "TERMGATE_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def resolve_level(verbose: bool = False, level: str | int | None = None) -> int:
    """Pick the root log level.

    ``verbose`` wins, then ``level``, then ``$TERMGATE_LOG_LEVEL``,
    then WARNING. Unknown level names fall back to INFO.
    """
    if verbose:
        return logging.DEBUG
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV)
    if level is None:
        return logging.WARNING
    if isinstance(level, int):
        return level

    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(verbose: bool = False, level: str | int | None = None) -> None:
    """Configure root logging to stderr."""
    logging.basicConfig(
        level=resolve_level(verbose, level),
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )
