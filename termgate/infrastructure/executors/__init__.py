"""Executors - process and transport implementations of ExecutorPort."""

from .env import BLOCKED_ENV_VARS, SAFE_ENV_VARS, build_safe_environment
from .local import LocalHandle, LocalProcessExecutor

__all__ = [
    "BLOCKED_ENV_VARS",
    "SAFE_ENV_VARS",
    "build_safe_environment",
    "LocalHandle",
    "LocalProcessExecutor",
]
