"""
Upstream error kinds.

Every failure talking to an external service is mapped onto one of these so
callers can decide between retrying, falling back to cache, or giving up.
"""

from typing import Optional


class UpstreamError(Exception):
    """Base class for failures of an outbound call."""

    def __init__(self, message: str, *, provider: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.status_code = status_code


class ValidationError(UpstreamError):
    """Upstream answered, but the payload does not have the expected shape."""


class ThrottledUpstream(UpstreamError):
    """Upstream answered 429. Never retried."""

    def __init__(self, message: str = "Upstream rate limit reached", *, provider: Optional[str] = None):
        super().__init__(message, provider=provider, status_code=429)


class UpstreamTimeout(UpstreamError):
    """The per-attempt deadline elapsed before the upstream answered."""


class TransientUpstreamError(UpstreamError):
    """Network failure or 5xx that outlasted the retry budget."""
