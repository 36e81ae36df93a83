"""
Aptos indexer GraphQL provider.

All tracked asset types are resolved with one ``fungible_asset_metadata``
query. Responses are parsed with strict models; anything that does not match
is rejected instead of being partially trusted.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
import pydantic

from ..config import settings
from ..types.supply import IndexerResponse
from .base import SupplyProvider
from .errors import ThrottledUpstream, TransientUpstreamError, ValidationError
from .retry import RetryingFetcher

logger = logging.getLogger(__name__)

SUPPLY_QUERY = """
  query Supply($types: [String!]) {
    fungible_asset_metadata(where: {asset_type: {_in: $types}}) {
      asset_type
      supply_v2
    }
  }
"""


class IndexerProvider(SupplyProvider):
    name = "aptos_indexer"

    def __init__(
        self,
        *,
        url: Optional[str] = None,
        fetcher: Optional[RetryingFetcher] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.url = url or settings.indexer_url
        self.fetcher = fetcher or RetryingFetcher(
            timeout=settings.upstream_timeout_seconds,
            max_retries=settings.upstream_max_retries,
            delay=settings.upstream_retry_delay_seconds,
            backoff=settings.upstream_retry_backoff,
            provider=self.name,
        )
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(headers={"content-type": "application/json"})
        return self._client

    async def ready(self) -> bool:
        return bool(self.url)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "Indexer URL not configured"}
        return {"status": "configured", "url": self.url}

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def get_supplies(self, asset_types: List[str]) -> Dict[str, int]:
        """Return ``{asset_type: supply}`` for the asset types the indexer knows.

        Asset types missing from the answer are simply absent from the result.
        """
        if not asset_types:
            return {}

        response = await self.fetcher.request(
            self._get_client(),
            "POST",
            self.url,
            json={"query": SUPPLY_QUERY, "variables": {"types": list(asset_types)}},
        )

        if response.status_code == 429:
            raise ThrottledUpstream(provider=self.name)
        if not response.is_success:
            raise TransientUpstreamError(
                f"Indexer request failed with status {response.status_code}",
                provider=self.name,
                status_code=response.status_code,
            )

        return self.parse_response(response)

    def parse_response(self, response: httpx.Response) -> Dict[str, int]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise ValidationError("Indexer returned invalid JSON", provider=self.name) from exc

        try:
            parsed = IndexerResponse.model_validate(payload)
        except pydantic.ValidationError as exc:
            raise ValidationError(
                f"Indexer response failed validation ({exc.error_count()} errors)",
                provider=self.name,
            ) from exc

        if parsed.errors:
            raise ValidationError(
                f"Indexer returned {len(parsed.errors)} GraphQL errors", provider=self.name
            )

        supplies: Dict[str, int] = {}
        for item in parsed.data.fungible_asset_metadata:
            supply = item.supply
            if item.asset_type and supply is not None:
                supplies[item.asset_type] = supply
        return supplies
