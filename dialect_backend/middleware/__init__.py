from .activity import ActivityMiddleware
from .rate_limiter import FixedWindowLimiter, RateLimitMiddleware

__all__ = ["ActivityMiddleware", "FixedWindowLimiter", "RateLimitMiddleware"]
