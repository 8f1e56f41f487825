"""Command injection rule."""

import re
from dataclasses import dataclass
from typing import ClassVar

from .validation_result import (
    BLOCKED_CHARACTERS,
    EMPTY,
    NEWLINE,
    NOT_A_STRING,
    NULL_BYTE,
    TOO_LONG,
    RuleKind,
    ValidationResult,
)

# Shell metacharacters that enable command injection. Read-only.
DANGEROUS_TOKENS: tuple[str, ...] = (
    ";",  # command separator
    "|",  # pipe
    "&",  # background / and
    "`",  # command substitution
    "$(",  # command substitution
    "${",  # variable expansion
    "||",  # or
    "&&",  # and
    ">",  # output redirection
    "<",  # input redirection
    ">>",  # append redirection
    "<<",  # here document
)

PIPE_TOKEN = "|"
REDIRECTION_TOKENS: frozenset[str] = frozenset({">", "<", ">>", "<<"})

DEFAULT_MAX_LENGTH = 1000

_WHITESPACE = re.compile(r"\s+")


def extract_base_command(command: str) -> str:
    """Return the first whitespace-delimited token of a command.

    Returns an empty string when the command has no tokens.
    """
    parts = _WHITESPACE.split(command.strip(), maxsplit=1)
    return parts[0] if parts else ""


@dataclass(frozen=True, slots=True)
class CommandRule:
    """Rejects commands that could escape into another shell command.

    Enabling ``allow_pipes`` exempts only the bare ``|`` token. ``||`` is
    still its own entry in the deny set and stays rejected.
    """

    kind: ClassVar[RuleKind] = RuleKind.COMMAND

    allow_pipes: bool = False
    allow_redirection: bool = False
    max_length: int = DEFAULT_MAX_LENGTH
    message: str = "The command contains unsafe characters"

    def __post_init__(self) -> None:
        if self.max_length < 1:
            raise ValueError("Max length must be positive")

    @property
    def denied_tokens(self) -> tuple[str, ...]:
        """Deny set after applying the configured exemptions."""
        tokens = DANGEROUS_TOKENS
        if self.allow_pipes:
            tokens = tuple(t for t in tokens if t != PIPE_TOKEN)
        if self.allow_redirection:
            tokens = tuple(t for t in tokens if t not in REDIRECTION_TOKENS)
        return tokens

    def validate(self, value: object) -> bool:
        return self.check(value).valid

    def check(self, value: object) -> ValidationResult:
        if not isinstance(value, str):
            return ValidationResult.failed(self.kind, NOT_A_STRING)
        if value == "":
            return ValidationResult.failed(self.kind, EMPTY)
        if len(value.encode("utf-8")) > self.max_length:
            return ValidationResult.failed(self.kind, TOO_LONG)
        if "\0" in value:
            return ValidationResult.failed(self.kind, NULL_BYTE)
        if "\n" in value or "\r" in value:
            return ValidationResult.failed(self.kind, NEWLINE)
        if any(token in value for token in self.denied_tokens):
            return ValidationResult.failed(self.kind, BLOCKED_CHARACTERS)
        return ValidationResult.passed(self.kind)
