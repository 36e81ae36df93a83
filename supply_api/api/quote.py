from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from ..services.quote import QuoteUnavailable
from ..state import SupplyState
from ..types.supply import ErrorResponse
from .deps import get_state

router = APIRouter(prefix="/api")


def _cache_control(state: SupplyState) -> str:
    fresh = int(state.settings.quote_cache_seconds)
    stale = int(state.settings.quote_stale_seconds)
    return f"public, max-age={fresh}, s-maxage={fresh}, stale-while-revalidate={stale}"


@router.get("/cmc")
async def get_price_quote(request: Request, state: SupplyState = Depends(get_state)) -> JSONResponse:
    """Latest USD price of the quoted asset, cached for a few minutes."""
    skip_cache = "no-cache" in request.headers.get("cache-control", "")

    try:
        quote = await state.quotes.get_quote(skip_cache=skip_cache)
    except QuoteUnavailable as exc:
        content = ErrorResponse(error=exc.error, message=exc.message).model_dump(exclude_none=True)
        headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
        return JSONResponse(status_code=exc.status_code, content=content, headers=headers)

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=quote.model_dump(),
        headers={"Cache-Control": _cache_control(state)},
    )
