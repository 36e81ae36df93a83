from .supply import (
    AssetMetadata,
    ErrorResponse,
    GraphQLErrorItem,
    IndexerResponse,
    QuotePayload,
    SupplyData,
    SupplyResponse,
    SupplyResult,
)

__all__ = [
    "AssetMetadata",
    "ErrorResponse",
    "GraphQLErrorItem",
    "IndexerResponse",
    "QuotePayload",
    "SupplyData",
    "SupplyResponse",
    "SupplyResult",
]
