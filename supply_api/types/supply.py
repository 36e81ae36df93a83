from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, StrictInt, StrictStr, field_validator


# ---------------------------------------------------------------------------
# Upstream indexer payloads
# ---------------------------------------------------------------------------

class AssetMetadata(BaseModel):
    asset_type: StrictStr
    supply_v2: Union[StrictStr, StrictInt]

    @field_validator("supply_v2")
    @classmethod
    def _non_negative_integer(cls, value: Union[str, int]) -> Union[str, int]:
        if isinstance(value, bool):
            raise ValueError("supply_v2 must be an integer")
        if isinstance(value, str):
            if value and not (value.isascii() and value.isdigit()):
                raise ValueError("supply_v2 must be a decimal integer string")
        elif value < 0:
            raise ValueError("supply_v2 must be non-negative")
        return value

    @property
    def supply(self) -> Optional[int]:
        """Parsed supply, or None when the indexer sent an empty string."""
        if self.supply_v2 == "":
            return None
        return int(self.supply_v2)


class GraphQLErrorItem(BaseModel):
    message: StrictStr


class SupplyData(BaseModel):
    fungible_asset_metadata: List[AssetMetadata]


class IndexerResponse(BaseModel):
    data: SupplyData
    errors: Optional[List[GraphQLErrorItem]] = None


# ---------------------------------------------------------------------------
# API responses
# ---------------------------------------------------------------------------

class SupplyResult(BaseModel):
    symbol: str = Field(description="Display symbol")
    supply: Optional[str] = Field(description="Circulating supply in base units, as a decimal string")
    error: Optional[str] = Field(default=None, description="Why the supply is missing in a partial response")

    def to_json(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"symbol": self.symbol, "supply": self.supply}
        if self.error is not None:
            data["error"] = self.error
        return data


class SupplyResponse(BaseModel):
    supplies: List[SupplyResult] = Field(description="Per-symbol supply in configured order")
    total: str = Field(description="Sum of all available supplies, as a decimal string")
    cached: bool = Field(description="Whether cached values contributed to the response")
    partial: Optional[bool] = Field(default=None, description="Set when some supplies are unavailable")
    message: Optional[str] = Field(default=None, description="Explanation for partial responses")


class ErrorResponse(BaseModel):
    error: str
    message: Optional[str] = None


class QuotePayload(BaseModel):
    symbol: str
    name: str
    price: float
    updated: str = Field(description="ISO-8601 time the quote was fetched")
