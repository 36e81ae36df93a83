from .logging_middleware import RequestLoggingMiddleware
from .rate_limit import (
    RateLimitDecision,
    RateLimiter,
    RateLimitExceeded,
    RateLimitRecord,
    client_identifier,
)

__all__ = [
    "RequestLoggingMiddleware",
    "RateLimitDecision",
    "RateLimiter",
    "RateLimitExceeded",
    "RateLimitRecord",
    "client_identifier",
]
