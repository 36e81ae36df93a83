from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from ..middleware.rate_limit import RateLimitDecision, RateLimitExceeded, client_identifier
from ..services.supply import AggregateResult
from ..state import SupplyState
from ..types.supply import ErrorResponse, SupplyResponse, SupplyResult
from .deps import get_state

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

CACHE_CONTROL = "public, s-maxage=60, stale-while-revalidate=30"
PARTIAL_MESSAGE = "Some data could not be fetched. Showing partial results with cached data."
UNAVAILABLE = "Data unavailable"


def generate_etag(body: Dict[str, Any]) -> str:
    """Quoted content fingerprint of a JSON body, stable across key order."""
    canonical = json.dumps(body, sort_keys=True, separators=(",", ":"))
    return f'"{hashlib.sha1(canonical.encode("utf-8")).hexdigest()}"'


def _rate_limited(decision: RateLimitDecision) -> JSONResponse:
    headers = decision.headers()
    headers.update({
        "Retry-After": str(decision.retry_after),
        "X-Rate-Limit-Policy": "sliding-window",
    })
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=ErrorResponse(
            error="Rate limit exceeded",
            message=f"Woah! Please slow down there. Try again in {decision.retry_after} seconds.",
        ).model_dump(),
        headers=headers,
    )


def _full_response(state: SupplyState, result: AggregateResult) -> SupplyResponse:
    supplies: List[SupplyResult] = []
    total = 0
    for symbol, key in state.aggregator.tokens.items():
        value = result.values[key]
        total += value
        supplies.append(SupplyResult(symbol=symbol, supply=str(value)))
    return SupplyResponse(supplies=supplies, total=str(total), cached=result.cached)


def _partial_response(state: SupplyState) -> SupplyResponse | None:
    supplies: List[SupplyResult] = []
    total = 0
    available = 0
    for symbol, value in state.aggregator.cached_by_symbol().items():
        if value is None:
            supplies.append(SupplyResult(symbol=symbol, supply=None, error=UNAVAILABLE))
            continue
        available += 1
        total += value
        supplies.append(SupplyResult(symbol=symbol, supply=str(value)))

    if not available:
        return None
    return SupplyResponse(
        supplies=supplies,
        total=str(total),
        cached=True,
        partial=True,
        message=PARTIAL_MESSAGE,
    )


def _body(response: SupplyResponse) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "supplies": [item.to_json() for item in response.supplies],
        "total": response.total,
        "cached": response.cached,
    }
    if response.partial:
        body["partial"] = True
        body["message"] = response.message
    return body


@router.get("/supply")
async def get_supply(request: Request, state: SupplyState = Depends(get_state)) -> JSONResponse:
    """Circulating supply for every tracked stablecoin plus their total."""
    try:
        decision = state.rate_limiter.enforce(client_identifier(request))
    except RateLimitExceeded as exc:
        logger.info("Rate limited client, retry after %ds", exc.retry_after)
        return _rate_limited(exc.decision)

    headers = decision.headers()

    try:
        result = await state.aggregator.fetch_all()
    except Exception as exc:  # noqa: BLE001
        logger.warning("Error fetching complete supply data")
        logger.debug("Supply aggregation failure: %s", exc, exc_info=True)

        partial = _partial_response(state)
        if partial is not None:
            return JSONResponse(
                status_code=status.HTTP_206_PARTIAL_CONTENT,
                content=_body(partial),
                headers=headers,
            )

        logger.error("Supply request failed with no cached data: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(error="Internal server error", message="Failed to process request").model_dump(),
            headers=headers,
        )

    body = _body(_full_response(state, result))
    headers.update({
        "Cache-Control": CACHE_CONTROL,
        "ETag": generate_etag(body),
    })
    return JSONResponse(content=body, headers=headers)
