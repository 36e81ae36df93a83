import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .api import health, quote, supply
from .config import settings
from .logging_config import setup_logging
from .middleware.logging_middleware import RequestLoggingMiddleware
from .state import SupplyState, build_state

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    state: Optional[SupplyState] = getattr(app.state, "supply", None)
    if state is None:
        state = app.state.supply = build_state(settings)
    if state.settings.require_cmc_key and not state.quotes.configured:
        state.settings.require_quote_credentials()
    logger.info("Starting supply API: %s", state.settings.summary())
    state.sweeper.start()
    try:
        yield
    finally:
        await state.aclose()


def create_app(state: Optional[SupplyState] = None) -> FastAPI:
    """Build the application.

    Without an explicit ``state`` the components are built from the global
    settings when the lifespan starts, after logging is configured.
    """
    app = FastAPI(
        title="Stablecoin Supply API",
        description="Cached, rate-limited supply figures for Aptos stablecoins",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    if state is not None:
        app.state.supply = state
    origins = (state.settings if state is not None else settings).allowed_origins

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=False,
        allow_methods=["GET"],
        allow_headers=["*"],
        expose_headers=["ETag", "Retry-After", "X-RateLimit-Limit", "X-RateLimit-Remaining",
                        "X-RateLimit-Reset", "X-RateLimit-Burst-Limit", "X-RateLimit-Burst-Remaining"],
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(supply.router, tags=["Supply"])
    app.include_router(quote.router, tags=["Quote"])

    @app.get("/")
    async def root():
        """Root endpoint with basic info"""
        return {
            "name": "Stablecoin Supply API",
            "version": __version__,
            "docs": "/docs",
            "health": "/healthz",
            "endpoints": ["/api/supply", "/api/cmc"],
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "supply_api.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower()
    )
