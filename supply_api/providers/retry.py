"""
Outbound request execution with a deadline and exponential backoff.

Only failures that are plausibly transient are retried: network errors and
5xx responses. A 429 or any other 4xx is handed back to the caller untouched,
a timed-out attempt is reported as ``UpstreamTimeout``, and cancellation of
the calling task is never swallowed.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import httpx

from .errors import TransientUpstreamError, UpstreamError, UpstreamTimeout

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def is_client_error(status_code: int) -> bool:
    return 400 <= status_code < 500


class RetryingFetcher:
    def __init__(
        self,
        *,
        timeout: float = 5.0,
        max_retries: int = 2,
        delay: float = 1.0,
        backoff: float = 1.5,
        sleep: Optional[Sleep] = None,
        provider: Optional[str] = None,
    ) -> None:
        self.timeout = timeout
        self.max_retries = max_retries
        self.delay = delay
        self.backoff = backoff
        self.provider = provider
        self._sleep = sleep or asyncio.sleep

    async def _attempt(self, client: httpx.AsyncClient, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await asyncio.wait_for(client.request(method, url, **kwargs), timeout=self.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise UpstreamTimeout(
                f"Request timed out after {self.timeout:g}s", provider=self.provider
            ) from exc

    async def request(self, client: httpx.AsyncClient, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send one request, retrying transient failures.

        Returns the final response, which may still be a 4xx or, once retries
        are exhausted, a 5xx. Raises ``UpstreamTimeout`` when an attempt misses
        its deadline, ``TransientUpstreamError`` when the network keeps
        failing and ``UpstreamError`` for any other request error.
        """
        retries_left = self.max_retries
        delay = self.delay

        while True:
            try:
                response = await self._attempt(client, method, url, **kwargs)
            except httpx.TransportError as exc:
                if retries_left <= 0:
                    raise TransientUpstreamError(
                        f"Network error: {exc.__class__.__name__}", provider=self.provider
                    ) from exc
                logger.warning(
                    "Upstream network error, retrying in %.2fs (%d retries left)",
                    delay,
                    retries_left,
                )
            except httpx.RequestError as exc:
                # Redirect loops, undecodable bodies: not retried
                raise UpstreamError(
                    f"Request failed: {exc.__class__.__name__}", provider=self.provider
                ) from exc
            else:
                if response.is_success or is_client_error(response.status_code):
                    return response
                if retries_left <= 0:
                    return response
                logger.warning(
                    "Upstream responded %d, retrying in %.2fs (%d retries left)",
                    response.status_code,
                    delay,
                    retries_left,
                )

            await self._sleep(delay)
            retries_left -= 1
            delay *= self.backoff
