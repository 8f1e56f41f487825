"""User identifier value object."""

from dataclasses import dataclass

LOCAL_USER = "local-user"


@dataclass(frozen=True, slots=True)
class UserId:
    """Identifier of the user driving a terminal (value object)."""

    value: str

    def __post_init__(self) -> None:
        if not self.value:
            raise ValueError("UserId cannot be empty")

    @classmethod
    def local_user(cls) -> "UserId":
        """User ID for unauthenticated local use."""
        return cls(LOCAL_USER)

    def __str__(self) -> str:
        return self.value
