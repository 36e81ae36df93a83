"""
In-memory per-client rate limiting.

Each client gets a long sliding window plus a short burst window. State is
process-local; there is no shared store.
"""

import math
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from fastapi import Request


@dataclass
class RateLimitRecord:
    count: int
    reset_at: float
    timestamps: List[float] = field(default_factory=list)
    last_request_at: float = 0.0


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset: int
    burst_limit: int
    burst_remaining: int
    retry_after: int = 0

    def headers(self) -> Dict[str, str]:
        """X-RateLimit-* telemetry attached to every response."""
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset),
            "X-RateLimit-Burst-Limit": str(self.burst_limit),
            "X-RateLimit-Burst-Remaining": str(self.burst_remaining),
        }


class RateLimitExceeded(Exception):
    """Rate limit has been exceeded."""
    def __init__(self, decision: RateLimitDecision):
        self.decision = decision
        self.retry_after = decision.retry_after
        super().__init__(f"Rate limit exceeded, retry after {decision.retry_after}s")


class RateLimiter:
    """
    Sliding window + burst rate limiter keyed by client identifier.

    A request is rejected when it is the (burst_limit + 1)-th inside the
    burst window, or the (limit + 1)-th inside the long window. The periodic
    ``sweep`` drops finished windows and decays idle clients gradually
    instead of resetting them.
    """

    def __init__(
        self,
        limit: int = 15,
        window_seconds: float = 60,
        burst_limit: int = 5,
        burst_window_seconds: float = 10,
        idle_seconds: float = 30,
        decay: int = 3,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self.burst_limit = burst_limit
        self.burst_window_seconds = burst_window_seconds
        self.idle_seconds = idle_seconds
        self.decay = decay
        self._clock = clock
        self._records: Dict[str, RateLimitRecord] = {}

    def _prune(self, record: RateLimitRecord, now: float) -> None:
        record.timestamps = [t for t in record.timestamps if now - t < self.burst_window_seconds]

    def _decision(self, record: RateLimitRecord, now: float, allowed: bool, retry_after: int = 0) -> RateLimitDecision:
        return RateLimitDecision(
            allowed=allowed,
            limit=self.limit,
            remaining=max(0, self.limit - record.count) if allowed else 0,
            reset=max(0, math.ceil(record.reset_at - now)) if allowed else retry_after,
            burst_limit=self.burst_limit,
            burst_remaining=max(0, self.burst_limit - len(record.timestamps)),
            retry_after=retry_after,
        )

    def check(self, client_id: str) -> RateLimitDecision:
        """Record one request from ``client_id`` and decide whether to admit it."""
        now = self._clock()
        record = self._records.get(client_id)

        if record is None or now >= record.reset_at:
            record = RateLimitRecord(
                count=1, reset_at=now + self.window_seconds, timestamps=[now], last_request_at=now
            )
            self._records[client_id] = record
            return self._decision(record, now, allowed=True)

        self._prune(record, now)
        record.timestamps.append(now)
        record.last_request_at = now

        if len(record.timestamps) > self.burst_limit:
            return self._decision(
                record, now, allowed=False, retry_after=math.ceil(self.burst_window_seconds)
            )

        record.count += 1
        if record.count > self.limit:
            return self._decision(
                record, now, allowed=False, retry_after=max(1, math.ceil(record.reset_at - now))
            )

        return self._decision(record, now, allowed=True)

    def enforce(self, client_id: str) -> RateLimitDecision:
        """Like ``check`` but raises ``RateLimitExceeded`` on rejection."""
        decision = self.check(client_id)
        if not decision.allowed:
            raise RateLimitExceeded(decision)
        return decision

    def sweep(self) -> int:
        """Drop elapsed windows and decay idle clients. Returns records removed."""
        now = self._clock()
        removed = 0
        for client_id, record in list(self._records.items()):
            self._prune(record, now)
            if now >= record.reset_at and not record.timestamps:
                del self._records[client_id]
                removed += 1
                continue

            if now - record.last_request_at > self.idle_seconds and record.count > 0:
                record.count = max(0, record.count - self.decay)
        return removed

    def get_record(self, client_id: str) -> Optional[RateLimitRecord]:
        return self._records.get(client_id)

    @property
    def tracked_clients(self) -> int:
        return len(self._records)


def client_identifier(request: Request) -> str:
    """First X-Forwarded-For hop, then X-Real-IP, then ``unknown``."""
    forwarded_for = request.headers.get("x-forwarded-for", "")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip", "").strip()
    return real_ip or "unknown"
