from pathlib import Path
from typing import Any, Dict, List

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]

# Aptos fungible asset types, keyed by the symbol shown on the dashboard
DEFAULT_TOKENS: Dict[str, str] = {
    "USDt": "0x357b0b74bc833e95a115ad22604854d6b0fca151cecd94111770e5d6ffc9dc2b",
    "USDC": "0xbae207659db88bea0cbead6da0ed00aac12edcdda169e591cd41c94180b46f3b",
    "USDe": "0xf37a8864fe737eb8ec2c2931047047cbaed1beed3fb0e5b7c5526dafd3b9c2e9",
    "sUSDe": "0xb30a694a344edee467d9f82330bbe7c3b89f440a1ecd2da1f3bca266560fce69",
}


class MissingCredentialError(RuntimeError):
    """A required upstream credential is absent from configuration."""


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"], description="CORS allowed origins")

    # Indexer
    indexer_url: str = Field(
        default="https://indexer.mainnet.aptoslabs.com/v1/graphql",
        description="Aptos indexer GraphQL endpoint",
    )
    tokens: Dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_TOKENS),
        description="Symbol to asset type table, in display order",
    )

    # Supply Cache
    supply_cache_ttl_seconds: float = Field(default=3600, gt=0, description="Supply cache TTL in seconds")
    supply_cache_max_size: int = Field(default=100, ge=1, description="Maximum supply cache entries")

    # Client Rate Limiting
    rate_limit_window_seconds: float = Field(default=60, gt=0, description="Long rate-limit window")
    rate_limit_max_requests: int = Field(default=15, ge=1, description="Requests allowed per long window")
    rate_limit_burst_window_seconds: float = Field(default=10, gt=0, description="Burst window")
    rate_limit_burst_limit: int = Field(default=5, ge=1, description="Requests allowed per burst window")
    rate_limit_idle_seconds: float = Field(
        default=30,
        gt=0,
        description="Inactivity after which a client's long-window count starts to decay",
    )
    rate_limit_decay: int = Field(default=3, ge=0, description="Count removed per sweep from idle clients")

    # Outbound Requests
    upstream_timeout_seconds: float = Field(default=5, gt=0, description="Per-attempt upstream timeout")
    upstream_max_retries: int = Field(default=2, ge=0, description="Retries for transient upstream failures")
    upstream_retry_delay_seconds: float = Field(default=1.0, ge=0, description="Initial retry delay")
    upstream_retry_backoff: float = Field(default=1.5, ge=1, description="Retry delay multiplier")

    # Background Maintenance
    sweep_interval_seconds: float = Field(default=30, gt=0, description="Cache and rate-limit sweep interval")

    # CoinMarketCap Quote Proxy
    cmc_api_key: str = Field(
        default="",
        description="CoinMarketCap Pro API key",
        validation_alias=AliasChoices("cmc_api_key", "CMC_API_KEY", "CMC_PRO_API_KEY"),
    )
    cmc_base_url: str = Field(default="https://pro-api.coinmarketcap.com", description="CoinMarketCap API base URL")
    cmc_asset_id: str = Field(default="29471", description="CoinMarketCap id of the quoted asset")
    cmc_symbol: str = Field(default="sUSDe", description="Symbol reported for the quoted asset")
    cmc_name: str = Field(default="Ethena Staked USDe", description="Name reported for the quoted asset")
    require_cmc_key: bool = Field(
        default=True,
        description="Refuse to start without CMC_API_KEY; false serves /api/supply alone in degraded mode",
    )
    quote_cache_seconds: float = Field(default=300, gt=0, description="Quote freshness window")
    quote_stale_seconds: float = Field(default=60, ge=0, description="stale-while-revalidate for quotes")
    quote_min_interval_seconds: float = Field(default=2, ge=0, description="Minimum spacing of upstream quote calls")

    @model_validator(mode="after")
    def _check_limits(self) -> "Settings":
        if self.rate_limit_burst_limit >= self.rate_limit_max_requests:
            raise ValueError("rate_limit_burst_limit must be lower than rate_limit_max_requests")
        if self.rate_limit_burst_window_seconds >= self.rate_limit_window_seconds:
            raise ValueError("rate_limit_burst_window_seconds must be shorter than rate_limit_window_seconds")
        if not self.tokens:
            raise ValueError("tokens must contain at least one asset")
        return self

    @property
    def has_cmc_key(self) -> bool:
        return bool(self.cmc_api_key)

    def require_quote_credentials(self) -> str:
        if not self.cmc_api_key:
            raise MissingCredentialError("CMC_API_KEY is not configured")
        return self.cmc_api_key

    def summary(self) -> Dict[str, Any]:
        """Non-secret settings worth logging at startup."""
        return {
            "indexer_url": self.indexer_url,
            "tokens": len(self.tokens),
            "cache_ttl_seconds": self.supply_cache_ttl_seconds,
            "rate_limit": f"{self.rate_limit_max_requests}/{self.rate_limit_window_seconds:g}s",
            "burst_limit": f"{self.rate_limit_burst_limit}/{self.rate_limit_burst_window_seconds:g}s",
            "quote_configured": self.has_cmc_key,
        }


# Global settings instance
settings = Settings()
