"""Process-wide state shared by the request handlers."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .cache import SupplyCache
from .config import MissingCredentialError, Settings
from .middleware.rate_limit import RateLimiter
from .providers.base import QuoteProvider, SupplyProvider
from .providers.coinmarketcap import CoinMarketCapProvider
from .providers.indexer import IndexerProvider
from .providers.retry import RetryingFetcher
from .services.quote import QuoteService
from .services.supply import SupplyAggregator
from .services.sweeper import PeriodicSweeper

logger = logging.getLogger(__name__)


@dataclass
class SupplyState:
    settings: Settings
    cache: SupplyCache
    rate_limiter: RateLimiter
    aggregator: SupplyAggregator
    quotes: QuoteService
    sweeper: PeriodicSweeper

    async def aclose(self) -> None:
        await self.sweeper.stop()
        await self.aggregator.provider.aclose()
        if self.quotes.provider is not None:
            await self.quotes.provider.aclose()


def build_state(
    settings: Settings,
    *,
    supply_provider: Optional[SupplyProvider] = None,
    quote_provider: Optional[QuoteProvider] = None,
    clock: Callable[[], float] = time.monotonic,
) -> SupplyState:
    cache = SupplyCache(
        ttl=settings.supply_cache_ttl_seconds,
        max_size=settings.supply_cache_max_size,
        clock=clock,
    )
    rate_limiter = RateLimiter(
        limit=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_seconds,
        burst_limit=settings.rate_limit_burst_limit,
        burst_window_seconds=settings.rate_limit_burst_window_seconds,
        idle_seconds=settings.rate_limit_idle_seconds,
        decay=settings.rate_limit_decay,
        clock=clock,
    )
    aggregator = SupplyAggregator(
        settings.tokens,
        cache,
        supply_provider or IndexerProvider(
            url=settings.indexer_url,
            fetcher=RetryingFetcher(
                timeout=settings.upstream_timeout_seconds,
                max_retries=settings.upstream_max_retries,
                delay=settings.upstream_retry_delay_seconds,
                backoff=settings.upstream_retry_backoff,
                provider=IndexerProvider.name,
            ),
        ),
    )

    if quote_provider is None:
        try:
            quote_provider = CoinMarketCapProvider(
                api_key=settings.require_quote_credentials(),
                asset_id=settings.cmc_asset_id,
                base_url=settings.cmc_base_url,
            )
        except MissingCredentialError:
            if settings.require_cmc_key:
                raise
            logger.error("CMC_API_KEY not configured, /api/cmc will be unavailable")

    quotes = QuoteService(
        quote_provider,
        symbol=settings.cmc_symbol,
        name=settings.cmc_name,
        fresh_seconds=settings.quote_cache_seconds,
        min_interval_seconds=settings.quote_min_interval_seconds,
        clock=clock,
    )

    sweeper = PeriodicSweeper(interval=settings.sweep_interval_seconds)
    sweeper.register("rate_limits", rate_limiter.sweep)
    sweeper.register("supply_cache", cache.clean_expired)

    return SupplyState(
        settings=settings,
        cache=cache,
        rate_limiter=rate_limiter,
        aggregator=aggregator,
        quotes=quotes,
        sweeper=sweeper,
    )
