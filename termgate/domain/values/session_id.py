"""Session identifier value object."""

import uuid
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SessionId:
    """Opaque session identifier (value object)."""

    value: str

    def __post_init__(self) -> None:
        if not self.value:
            raise ValueError("SessionId cannot be empty")

    @classmethod
    def generate(cls) -> "SessionId":
        """Create a new random session ID."""
        return cls(str(uuid.uuid4()))

    def __str__(self) -> str:
        return self.value
