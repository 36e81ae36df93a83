import pytest

from supply_api.cache import SupplyCache
from supply_api.providers.errors import ThrottledUpstream, TransientUpstreamError, UpstreamTimeout, ValidationError
from supply_api.services.supply import DataUnavailable, SupplyAggregator
from tests.support import SUPPLIES, SUSDE, TOKENS, USDC, USDE, USDT, FakeSupplyProvider


@pytest.fixture
def cache(clock):
    return SupplyCache(ttl=3600, max_size=100, clock=clock)


def make_aggregator(cache, *outcomes):
    provider = FakeSupplyProvider(*outcomes)
    return SupplyAggregator(TOKENS, cache, provider), provider


class TestRefreshSelection:
    @pytest.mark.asyncio
    async def test_cold_cache_fetches_everything_in_one_call(self, cache):
        aggregator, provider = make_aggregator(cache, SUPPLIES)

        result = await aggregator.fetch_all()

        assert provider.calls == [[USDT, USDC, USDE, SUSDE]]
        assert result.values == SUPPLIES
        assert result.cached is True

    @pytest.mark.asyncio
    async def test_only_missing_key_is_requested(self, cache):
        for key in (USDT, USDC, USDE):
            cache.set(key, SUPPLIES[key])
        aggregator, provider = make_aggregator(cache, {SUSDE: SUPPLIES[SUSDE]})

        result = await aggregator.fetch_all()

        assert provider.calls == [[SUSDE]]
        assert result.values == SUPPLIES

    @pytest.mark.asyncio
    async def test_all_fresh_skips_upstream(self, cache):
        for key, value in SUPPLIES.items():
            cache.set(key, value)
        aggregator, provider = make_aggregator(cache, AssertionError("unexpected call"))

        result = await aggregator.fetch_all()

        assert provider.calls == []
        assert result.values == SUPPLIES

    @pytest.mark.asyncio
    async def test_nearing_expiration_is_refreshed_early(self, cache, clock):
        cache.set(USDT, 1)
        clock.advance(3000)
        for key in (USDC, USDE, SUSDE):
            cache.set(key, SUPPLIES[key])
        aggregator, provider = make_aggregator(cache, {USDT: SUPPLIES[USDT]})

        result = await aggregator.fetch_all()

        assert provider.calls == [[USDT]]
        assert result.values[USDT] == SUPPLIES[USDT]

    @pytest.mark.asyncio
    async def test_nearing_expiration_value_survives_missing_response(self, cache, clock):
        cache.set(USDT, 42)
        clock.advance(3000)
        for key in (USDC, USDE, SUSDE):
            cache.set(key, SUPPLIES[key])
        aggregator, provider = make_aggregator(cache, {})

        result = await aggregator.fetch_all()

        assert result.values[USDT] == 42

    @pytest.mark.asyncio
    async def test_unrequested_keys_are_not_cached(self, cache):
        aggregator, _ = make_aggregator(cache, {**SUPPLIES, "0xstray": 1})

        await aggregator.fetch_all()

        assert not cache.has("0xstray")


class TestFallback:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            ThrottledUpstream(),
            ValidationError("bad shape"),
            UpstreamTimeout("slow"),
            TransientUpstreamError("down"),
        ],
    )
    async def test_upstream_failure_serves_expired_cache(self, cache, clock, error):
        for key, value in SUPPLIES.items():
            cache.set(key, value)
        clock.advance(7200)
        aggregator, provider = make_aggregator(cache, error)

        result = await aggregator.fetch_all()

        assert len(provider.calls) == 1
        assert result.values == SUPPLIES
        assert result.stale is True

    @pytest.mark.asyncio
    async def test_cold_cache_throttled_is_unavailable(self, cache):
        aggregator, _ = make_aggregator(cache, ThrottledUpstream())

        with pytest.raises(DataUnavailable) as excinfo:
            await aggregator.fetch_all()
        assert excinfo.value.missing == 4

    @pytest.mark.asyncio
    async def test_partial_upstream_answer_on_cold_cache_is_unavailable(self, cache):
        aggregator, _ = make_aggregator(cache, {USDT: 1, USDC: 2})

        with pytest.raises(DataUnavailable) as excinfo:
            await aggregator.fetch_all()

        assert excinfo.value.missing == 2
        assert cache.get(USDT) == 1

    @pytest.mark.asyncio
    async def test_expired_entry_is_kept_for_partial_responses(self, cache, clock):
        cache.set(USDT, 9)
        clock.advance(4000)
        aggregator, _ = make_aggregator(cache, {USDC: 2, USDE: 3, SUSDE: 4})

        with pytest.raises(DataUnavailable):
            await aggregator.fetch_all()

        assert aggregator.cached_by_symbol() == {"USDt": 9, "USDC": 2, "USDe": 3, "sUSDe": 4}

    @pytest.mark.asyncio
    async def test_logs_missing_count_without_keys(self, cache, caplog):
        aggregator, _ = make_aggregator(cache, {USDT: 1})

        with pytest.raises(DataUnavailable):
            await aggregator.fetch_all()

        assert "Missing data for 3 tokens" in caplog.text
        assert USDC not in caplog.text


def test_cached_by_symbol_reports_gaps(cache):
    cache.set(USDC, 7)
    aggregator, _ = make_aggregator(cache, {})

    assert aggregator.cached_by_symbol() == {"USDt": None, "USDC": 7, "USDe": None, "sUSDe": None}
