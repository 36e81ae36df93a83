from typing import Dict, List, Optional, Union

from supply_api.config import DEFAULT_TOKENS, Settings
from supply_api.providers.base import QuoteProvider, SupplyProvider


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSupplyProvider(SupplyProvider):
    """Replays canned indexer outcomes and records every batched call."""

    name = "fake_indexer"

    def __init__(self, *outcomes: Union[Dict[str, int], Exception]):
        self.outcomes = list(outcomes)
        self.calls: List[List[str]] = []
        self.closed = False

    async def ready(self) -> bool:
        return True

    async def health_check(self):
        return {"status": "healthy"}

    async def aclose(self) -> None:
        self.closed = True

    async def get_supplies(self, asset_types: List[str]) -> Dict[str, int]:
        self.calls.append(list(asset_types))
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return dict(outcome)


class FakeQuoteProvider(QuoteProvider):
    name = "fake_quotes"

    def __init__(self, *outcomes: Union[float, Exception]):
        self.outcomes = list(outcomes)
        self.calls = 0
        self.closed = False

    async def ready(self) -> bool:
        return True

    async def health_check(self):
        return {"status": "healthy"}

    async def aclose(self) -> None:
        self.closed = True

    async def get_price(self) -> float:
        self.calls += 1
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


TOKENS = dict(DEFAULT_TOKENS)
USDT, USDC, USDE, SUSDE = TOKENS.values()

SUPPLIES = {
    USDT: 1130000000600000,
    USDC: 284452249983816,
    USDE: 183411687,
    SUSDE: 65235918477665,
}


def make_settings(**overrides) -> Settings:
    values = {
        "tokens": TOKENS,
        "cmc_api_key": "",
        "require_cmc_key": False,
        "indexer_url": "https://indexer.test/v1/graphql",
        "cmc_base_url": "https://cmc.test",
    }
    values.update(overrides)
    return Settings(**values)

