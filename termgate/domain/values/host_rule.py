"""Host name / IP address rule."""

import ipaddress
import re
from dataclasses import dataclass
from typing import ClassVar

from .validation_result import (
    EMPTY,
    INVALID_HOSTNAME,
    IPV6_NOT_ALLOWED,
    LOCALHOST_NOT_ALLOWED,
    NOT_A_STRING,
    RuleKind,
    ValidationResult,
)

LOCALHOST_ALIASES: frozenset[str] = frozenset({"localhost", "127.0.0.1", "::1"})

# RFC 1123 host name: <=253 chars, dot-separated labels of 1-63 alphanumerics
# or hyphens, no hyphen at either end of a label.
HOSTNAME_PATTERN = re.compile(
    r"(?=.{1,253}\Z)"
    r"(?:(?!-)[a-zA-Z0-9-]{1,63}(?<!-)\.)*"
    r"(?!-)[a-zA-Z0-9-]{1,63}(?<!-)"
)


def _is_ipv4(value: str) -> bool:
    try:
        ipaddress.IPv4Address(value)
    except ValueError:
        return False
    return True


def _is_ipv6(value: str) -> bool:
    # Scoped addresses (fe80::1%eth0) are not plain literals
    if "%" in value:
        return False
    try:
        ipaddress.IPv6Address(value)
    except ValueError:
        return False
    return True


@dataclass(frozen=True, slots=True)
class HostRule:
    """Accepts host names, IPv4 literals and (optionally) IPv6 literals."""

    kind: ClassVar[RuleKind] = RuleKind.HOST

    allow_ipv6: bool = True
    allow_localhost: bool = True
    message: str = "The host must be a valid hostname or IP address"

    def validate(self, value: object) -> bool:
        return self.check(value).valid

    def check(self, value: object) -> ValidationResult:
        if not isinstance(value, str):
            return ValidationResult.failed(self.kind, NOT_A_STRING)
        if value == "":
            return ValidationResult.failed(self.kind, EMPTY)

        if value.lower() in LOCALHOST_ALIASES:
            if self.allow_localhost:
                return ValidationResult.passed(self.kind)
            return ValidationResult.failed(self.kind, LOCALHOST_NOT_ALLOWED)

        if _is_ipv4(value):
            return ValidationResult.passed(self.kind)

        if _is_ipv6(value):
            if self.allow_ipv6:
                return ValidationResult.passed(self.kind)
            return ValidationResult.failed(self.kind, IPV6_NOT_ALLOWED)

        if HOSTNAME_PATTERN.fullmatch(value):
            return ValidationResult.passed(self.kind)
        return ValidationResult.failed(self.kind, INVALID_HOSTNAME)
