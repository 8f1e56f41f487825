"""Rate limit configuration value object."""

from dataclasses import dataclass

# Commands per second per session, and how many may be sent at once
DEFAULT_RATE = 1.0
DEFAULT_BURST = 5


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    """Command rate limiting configuration (value object)."""

    rate: float = DEFAULT_RATE
    burst: int = DEFAULT_BURST

    def __post_init__(self) -> None:
        if self.rate <= 0:
            raise ValueError("Rate must be positive")
        if self.burst <= 0:
            raise ValueError("Burst must be positive")
