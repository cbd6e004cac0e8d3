"""Client-side call quota for provider requests."""

from .limiter import RateLimiter
from .models import RateLimitStatus, RateLimitWindow

__all__ = ["RateLimitStatus", "RateLimitWindow", "RateLimiter"]
