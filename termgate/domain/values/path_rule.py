"""File system path rule."""

import re
from dataclasses import dataclass
from typing import ClassVar

from .validation_result import (
    CONTROL_CHARACTERS,
    EMPTY,
    NOT_A_STRING,
    NOT_ABSOLUTE,
    NULL_BYTE,
    TRAVERSAL,
    RuleKind,
    ValidationResult,
)

# Checked after backslashes are normalized to forward slashes.
TRAVERSAL_PATTERNS: tuple[str, ...] = ("/../", "/..", "../", "..\\", "/..\\")

_DRIVE_PREFIX = re.compile(r"^[a-zA-Z]:[\\/]")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def contains_traversal(path: str) -> bool:
    """Check whether a path navigates upwards with ``..``."""
    normalized = path.replace("\\", "/")
    if any(pattern in normalized for pattern in TRAVERSAL_PATTERNS):
        return True
    return normalized.startswith("..")


def is_absolute(path: str) -> bool:
    """Unix absolute path or Windows drive path (``C:\\`` / ``C:/``)."""
    return path.startswith("/") or bool(_DRIVE_PREFIX.match(path))


@dataclass(frozen=True, slots=True)
class PathRule:
    """Accepts syntactically safe paths, optionally requiring absolute ones."""

    kind: ClassVar[RuleKind] = RuleKind.PATH

    allow_relative: bool = False
    block_traversal: bool = True
    message: str = "The path must be a valid file system path"

    def validate(self, value: object) -> bool:
        return self.check(value).valid

    def check(self, value: object) -> ValidationResult:
        if not isinstance(value, str):
            return ValidationResult.failed(self.kind, NOT_A_STRING)
        if value == "":
            return ValidationResult.failed(self.kind, EMPTY)
        if self.block_traversal and contains_traversal(value):
            return ValidationResult.failed(self.kind, TRAVERSAL)
        if not self.allow_relative and not is_absolute(value):
            return ValidationResult.failed(self.kind, NOT_ABSOLUTE)
        # Independent of the options above
        if "\0" in value:
            return ValidationResult.failed(self.kind, NULL_BYTE)
        if _CONTROL_CHARS.search(value):
            return ValidationResult.failed(self.kind, CONTROL_CHARACTERS)
        return ValidationResult.passed(self.kind)
