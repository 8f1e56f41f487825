"""Client information value object."""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ClientInfo:
    """Network identity of the browser that submitted an action."""

    ip_address: str = ""
    user_agent: str = ""

    @classmethod
    def unknown(cls) -> "ClientInfo":
        return cls()
