"""Domain services - pure business logic operations."""

from .command_policy import CommandPolicy, PolicyResult
from .rate_limiter import TokenBucketRateLimiter

__all__ = [
    "CommandPolicy",
    "PolicyResult",
    "TokenBucketRateLimiter",
]
