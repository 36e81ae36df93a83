"""
Single-slot cache in front of the price quote provider.

The last good quote is kept indefinitely and served whenever the upstream
cannot be asked (spacing, throttling, errors). A fresh quote is only
requested once the slot is older than the freshness window.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from ..providers.base import QuoteProvider
from ..providers.errors import ThrottledUpstream, UpstreamError, UpstreamTimeout, ValidationError
from ..types.supply import QuotePayload

logger = logging.getLogger(__name__)


class QuoteUnavailable(Exception):
    """No quote could be produced and nothing is cached to fall back on."""

    def __init__(
        self,
        status_code: int,
        error: str,
        message: Optional[str] = None,
        retry_after: Optional[int] = None,
    ):
        self.status_code = status_code
        self.error = error
        self.message = message
        self.retry_after = retry_after
        super().__init__(error)


@dataclass
class QuoteSlot:
    payload: QuotePayload
    fetched_at: float


class QuoteService:
    def __init__(
        self,
        provider: Optional[QuoteProvider],
        *,
        symbol: str,
        name: str,
        fresh_seconds: float = 300,
        min_interval_seconds: float = 2,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.provider = provider
        self.symbol = symbol
        self.name = name
        self.fresh_seconds = fresh_seconds
        self.min_interval_seconds = min_interval_seconds
        self._clock = clock
        self._slot: Optional[QuoteSlot] = None
        self._last_request_at: Optional[float] = None

    @property
    def configured(self) -> bool:
        return self.provider is not None

    @property
    def cached(self) -> Optional[QuotePayload]:
        return self._slot.payload if self._slot else None

    def _stale_or_raise(self, exc: QuoteUnavailable, reason: str) -> QuotePayload:
        if self._slot is not None:
            logger.info("%s, serving stale quote", reason)
            return self._slot.payload
        raise exc

    async def get_quote(self, skip_cache: bool = False) -> QuotePayload:
        if self.provider is None:
            raise QuoteUnavailable(500, "Price quote API key is not configured")

        now = self._clock()
        if not skip_cache and self._slot is not None and now - self._slot.fetched_at < self.fresh_seconds:
            logger.debug("Serving cached quote")
            return self._slot.payload

        if self._last_request_at is not None and now - self._last_request_at < self.min_interval_seconds:
            return self._stale_or_raise(
                QuoteUnavailable(
                    429,
                    "Too many requests",
                    "Please try again in a few seconds",
                    retry_after=max(1, round(self.min_interval_seconds)),
                ),
                "Quote request spacing hit",
            )
        self._last_request_at = now

        try:
            price = await self.provider.get_price()
        except ThrottledUpstream:
            return self._stale_or_raise(
                QuoteUnavailable(429, "Rate limit exceeded", "Too many requests to price API", retry_after=60),
                "Quote upstream rate limited",
            )
        except UpstreamTimeout:
            logger.error("Quote request timed out")
            return self._stale_or_raise(
                QuoteUnavailable(504, "Request timeout", "API request timed out"),
                "Quote request timed out",
            )
        except ValidationError:
            return self._stale_or_raise(QuoteUnavailable(502, "Invalid price data received"), "Invalid quote data")
        except UpstreamError as exc:
            logger.error("Quote fetch error: %s", exc.message)
            if exc.status_code is not None:
                failure = QuoteUnavailable(exc.status_code, f"API responded with status: {exc.status_code}")
            else:
                failure = QuoteUnavailable(500, "Internal server error")
            return self._stale_or_raise(failure, "Quote fetch failed")

        payload = QuotePayload(
            symbol=self.symbol,
            name=self.name,
            price=price,
            updated=datetime.now(timezone.utc).isoformat(),
        )
        self._slot = QuoteSlot(payload=payload, fetched_at=now)
        return payload
