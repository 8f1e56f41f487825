"""Token bucket rate limiter for command submissions."""

from collections.abc import Callable
from datetime import UTC, datetime

from ..values import RateLimitConfig


class TokenBucketRateLimiter:
    """Token bucket refilled at ``config.rate`` tokens per second.

    The bucket starts full at ``config.burst`` tokens and never holds
    more. A clock that goes backwards adds no tokens.
    """

    def __init__(
        self,
        config: RateLimitConfig,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._config = config
        self._clock = clock or (lambda: datetime.now(UTC))
        self._tokens = float(config.burst)
        self._last_refill = self._clock()

    @property
    def config(self) -> RateLimitConfig:
        return self._config

    @property
    def available_tokens(self) -> float:
        return self._tokens

    def try_acquire(self, tokens: int = 1) -> bool:
        """Take ``tokens`` if the bucket holds enough. Nothing is taken otherwise."""
        self._refill()
        if self._tokens >= tokens:
            self._tokens -= tokens
            return True
        return False

    def retry_after(self, tokens: int = 1) -> float:
        """Seconds until ``tokens`` can be acquired, 0 if they can be now."""
        self._refill()
        missing = tokens - self._tokens
        if missing <= 0:
            return 0.0
        return missing / self._config.rate

    def reset(self) -> None:
        self._tokens = float(self._config.burst)
        self._last_refill = self._clock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = (now - self._last_refill).total_seconds()
        if elapsed > 0:
            self._tokens = min(float(self._config.burst), self._tokens + elapsed * self._config.rate)
            self._last_refill = now
