"""Command allow-list policy."""

from collections.abc import Iterable
from dataclasses import dataclass, field

from ..errors import PolicyViolation
from ..values import extract_base_command

WILDCARD_SUFFIX = " *"


@dataclass(frozen=True, slots=True)
class PolicyResult:
    """Result of a policy check."""

    allowed: bool
    command: str
    base_command: str
    reason: str | None = None

    def to_violation(self) -> PolicyViolation:
        if self.allowed:
            raise ValueError("Command was allowed")
        return PolicyViolation(self.command, self.base_command)


@dataclass(frozen=True, slots=True)
class CommandPolicy:
    """Allow-list of base commands.

    Entries are matched case-sensitively. Three entry shapes exist:

    - ``ls``: the base command ``ls`` with any arguments
    - ``git *``: same as above, written explicitly
    - ``git status``: exactly this (trimmed) command line

    An empty allow-list, or ``allow_all``, means unrestricted. Injection
    checks are not part of the policy and must run separately.
    """

    allowed_commands: tuple[str, ...] = ()
    allow_all: bool = False
    _binaries: frozenset[str] = field(init=False, repr=False, compare=False)
    _full_commands: frozenset[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        entries: list[str] = []
        for raw in self.allowed_commands:
            entry = raw.strip()
            if entry and entry not in entries:
                entries.append(entry)

        binaries = set()
        full_commands = set()
        for entry in entries:
            if entry.endswith(WILDCARD_SUFFIX):
                binaries.add(entry[: -len(WILDCARD_SUFFIX)].strip())
            elif extract_base_command(entry) == entry:
                binaries.add(entry)
            else:
                full_commands.add(entry)

        object.__setattr__(self, "allowed_commands", tuple(entries))
        object.__setattr__(self, "_binaries", frozenset(binaries))
        object.__setattr__(self, "_full_commands", frozenset(full_commands))

    @classmethod
    def unrestricted(cls) -> "CommandPolicy":
        return cls(allow_all=True)

    @classmethod
    def from_list(cls, commands: Iterable[str] | None, allow_all: bool = False) -> "CommandPolicy":
        return cls(tuple(commands or ()), allow_all=allow_all)

    @property
    def is_unrestricted(self) -> bool:
        return self.allow_all or not self.allowed_commands

    @property
    def allowed_count(self) -> int:
        """Number of allow-list entries, for display."""
        return len(self.allowed_commands)

    def check(self, command: str) -> PolicyResult:
        """Check whether a command's base command is allowed."""
        base = extract_base_command(command)

        if self.is_unrestricted:
            return PolicyResult(allowed=True, command=command, base_command=base)

        if base in self._binaries or command.strip() in self._full_commands:
            return PolicyResult(allowed=True, command=command, base_command=base)

        return PolicyResult(
            allowed=False,
            command=command,
            base_command=base,
            reason=f"Command '{base}' is not on the allow-list",
        )

    def is_allowed(self, command: str) -> bool:
        return self.check(command).allowed
