"""Validation outcome shared by all validation rules."""

from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol


class RuleKind(StrEnum):
    """Which kind of input a rule guards."""

    COMMAND = "command"
    HOST = "host"
    PATH = "path"


# Reason codes
NOT_A_STRING = "not_a_string"
EMPTY = "empty"
TOO_LONG = "too_long"
NULL_BYTE = "null_byte"
NEWLINE = "newline"
BLOCKED_CHARACTERS = "blocked_characters"
LOCALHOST_NOT_ALLOWED = "localhost_not_allowed"
IPV6_NOT_ALLOWED = "ipv6_not_allowed"
INVALID_HOSTNAME = "invalid_hostname"
TRAVERSAL = "traversal"
NOT_ABSOLUTE = "not_absolute"
CONTROL_CHARACTERS = "control_characters"


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Result of checking one value against one rule."""

    valid: bool
    rule: RuleKind
    reason: str | None = None

    @classmethod
    def passed(cls, rule: RuleKind) -> "ValidationResult":
        return cls(valid=True, rule=rule)

    @classmethod
    def failed(cls, rule: RuleKind, reason: str) -> "ValidationResult":
        return cls(valid=False, rule=rule, reason=reason)

    def __bool__(self) -> bool:
        return self.valid


class ValidationRule(Protocol):
    """Protocol shared by CommandRule, HostRule and PathRule."""

    kind: RuleKind
    message: str

    def validate(self, value: object) -> bool:
        """Return True when the value is safe."""
        ...

    def check(self, value: object) -> ValidationResult:
        """Validate and report why a value was rejected."""
        ...
