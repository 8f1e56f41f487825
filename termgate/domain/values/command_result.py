"""Command result value object."""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Result of one executed command.

    A non-zero exit code is ordinary data, not an error.
    """

    exit_code: int
    output: str = ""
    duration_seconds: float = 0.0

    def __post_init__(self) -> None:
        if self.duration_seconds < 0:
            raise ValueError("Duration cannot be negative")

    @property
    def is_successful(self) -> bool:
        return self.exit_code == 0

    @property
    def formatted_duration(self) -> str:
        """Human readable duration, e.g. ``250ms`` or ``1.5s``."""
        if self.duration_seconds < 1:
            return f"{round(self.duration_seconds * 1000)}ms"
        return f"{round(self.duration_seconds, 2)}s"
