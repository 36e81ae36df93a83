from .base import Provider, QuoteProvider, SupplyProvider
from .coinmarketcap import CoinMarketCapProvider
from .errors import (
    ThrottledUpstream,
    TransientUpstreamError,
    UpstreamError,
    UpstreamTimeout,
    ValidationError,
)
from .indexer import IndexerProvider
from .retry import RetryingFetcher

__all__ = [
    "Provider",
    "QuoteProvider",
    "SupplyProvider",
    "CoinMarketCapProvider",
    "IndexerProvider",
    "RetryingFetcher",
    "ThrottledUpstream",
    "TransientUpstreamError",
    "UpstreamError",
    "UpstreamTimeout",
    "ValidationError",
]
