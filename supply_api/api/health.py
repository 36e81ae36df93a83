from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..state import SupplyState
from .deps import get_state

router = APIRouter()


@router.get("/healthz")
async def health_check(state: SupplyState = Depends(get_state)) -> Dict[str, Any]:
    """Health check that reports provider configuration and in-memory state"""

    providers = {
        state.aggregator.provider.name: await state.aggregator.provider.health_check(),
    }
    if state.quotes.provider is not None:
        providers[state.quotes.provider.name] = await state.quotes.provider.health_check()

    degraded = any(p["status"] not in ("configured", "healthy") for p in providers.values())

    return {
        "status": "degraded" if degraded or not state.quotes.configured else "healthy",
        "providers": providers,
        "quote_configured": state.quotes.configured,
        "cache": {
            "size": state.cache.size,
            "max_size": state.cache.max_size,
            "ttl_seconds": state.cache.ttl,
        },
        "rate_limit": {"tracked_clients": state.rate_limiter.tracked_clients},
        "sweeper": {
            "running": state.sweeper.running,
            "cycles": state.sweeper.cycles,
            "failures": state.sweeper.failures,
        },
    }
