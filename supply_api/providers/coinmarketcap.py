import logging
from typing import Any, Dict, Optional

import httpx

from ..config import settings
from .base import QuoteProvider
from .errors import ThrottledUpstream, UpstreamError, ValidationError
from .retry import RetryingFetcher

logger = logging.getLogger(__name__)


class CoinMarketCapProvider(QuoteProvider):
    """CoinMarketCap Pro API provider for a single asset quote"""

    name = "coinmarketcap"

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        asset_id: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        fetcher: Optional[RetryingFetcher] = None,
    ):
        self.api_key = settings.cmc_api_key if api_key is None else api_key
        self.asset_id = asset_id or settings.cmc_asset_id
        self.base_url = (base_url or settings.cmc_base_url).rstrip("/")
        # Upstream spacing is enforced by the quote cache, so no retries here
        self.fetcher = fetcher or RetryingFetcher(
            timeout=settings.upstream_timeout_seconds,
            max_retries=0,
            provider=self.name,
        )
        self._client = client

    def _build_headers(self) -> Dict[str, str]:
        return {
            "X-CMC_PRO_API_KEY": self.api_key,
            "Accept": "application/json",
        }

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient()
        return self._client

    async def ready(self) -> bool:
        return bool(self.api_key)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "CMC_API_KEY not configured"}
        return {"status": "configured", "asset_id": self.asset_id}

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def get_price(self) -> float:
        response = await self.fetcher.request(
            self._get_client(),
            "GET",
            f"{self.base_url}/v1/cryptocurrency/quotes/latest",
            params={"id": self.asset_id},
            headers=self._build_headers(),
        )

        if response.status_code == 429:
            raise ThrottledUpstream("Too many requests to price API", provider=self.name)
        if not response.is_success:
            logger.error("CoinMarketCap error %d: %s", response.status_code, response.text[:500])
            raise UpstreamError(
                f"API responded with status: {response.status_code}",
                provider=self.name,
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise ValidationError("Invalid price data received", provider=self.name) from exc

        price = _extract_price(payload, self.asset_id)
        if price is None:
            logger.error("Invalid price data structure from CoinMarketCap")
            raise ValidationError("Invalid price data received", provider=self.name)
        return price


def _extract_price(payload: Any, asset_id: str) -> Optional[float]:
    try:
        price = payload["data"][asset_id]["quote"]["USD"]["price"]
    except (KeyError, TypeError):
        return None
    if isinstance(price, bool) or not isinstance(price, (int, float)):
        return None
    return float(price)
