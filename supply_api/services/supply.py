"""
Supply aggregation over the cached indexer.

Keys that are missing or close to expiry are refreshed with a single batched
indexer query; everything else is served from the cache. When the indexer is
throttled or misbehaving the last known values are used, expired or not.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..cache import SupplyCache
from ..providers.base import SupplyProvider
from ..providers.errors import ThrottledUpstream, UpstreamError

logger = logging.getLogger(__name__)


class DataUnavailable(Exception):
    """At least one tracked asset has neither a fresh nor a cached supply."""

    def __init__(self, missing: int):
        self.missing = missing
        super().__init__(f"Supply data unavailable for {missing} assets")


@dataclass
class AggregateResult:
    values: Dict[str, int]
    cached: bool
    stale: bool = False


class SupplyAggregator:
    def __init__(self, tokens: Dict[str, str], cache: SupplyCache, provider: SupplyProvider) -> None:
        self.tokens = dict(tokens)
        self.cache = cache
        self.provider = provider

    @property
    def asset_types(self) -> List[str]:
        return list(dict.fromkeys(self.tokens.values()))

    def keys_to_refresh(self) -> List[str]:
        """Asset types that are absent, expired or nearing expiration."""
        return [key for key in self.asset_types if not self.cache.is_fresh(key)]

    async def fetch_all(self) -> AggregateResult:
        keys = self.asset_types
        to_fetch = self.keys_to_refresh()

        if not to_fetch:
            return AggregateResult(values=self._reconcile(keys), cached=True)

        try:
            fetched = await self.provider.get_supplies(to_fetch)
        except ThrottledUpstream:
            logger.warning("Indexer rate limit reached, using cache")
            return self._fallback(keys)
        except UpstreamError as exc:
            logger.warning("Failed to fetch supplies, using cache")
            logger.debug("Supply fetch error: %s", exc, exc_info=True)
            return self._fallback(keys)

        requested = set(to_fetch)
        for key, value in fetched.items():
            if key in requested:
                self.cache.set(key, value)

        missing = sum(1 for key in to_fetch if key not in fetched)
        if missing:
            logger.warning("Missing data for %d tokens", missing)

        return AggregateResult(
            values=self._reconcile(keys),
            cached=self.cache.size > 0,
        )

    def _reconcile(self, keys: List[str]) -> Dict[str, int]:
        values: Dict[str, int] = {}
        missing = 0
        for key in keys:
            # Expired entries are left in place for the partial-response path
            value = None if self.cache.is_expired(key) else self.cache.get(key)
            if value is None:
                missing += 1
            else:
                values[key] = value
        if missing:
            raise DataUnavailable(missing)
        return values

    def _fallback(self, keys: List[str]) -> AggregateResult:
        values: Dict[str, int] = {}
        missing = 0
        for key in keys:
            value = self.cache.peek(key)
            if value is None:
                missing += 1
            else:
                values[key] = value
        if missing:
            logger.warning("Missing cached data for %d tokens", missing)
            raise DataUnavailable(missing)
        return AggregateResult(values=values, cached=True, stale=True)

    def cached_by_symbol(self) -> Dict[str, Optional[int]]:
        """Last known supply per symbol, ignoring TTL. Used for partial responses."""
        return {symbol: self.cache.peek(key) for symbol, key in self.tokens.items()}
