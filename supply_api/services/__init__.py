from .quote import QuoteService, QuoteUnavailable
from .supply import AggregateResult, DataUnavailable, SupplyAggregator
from .sweeper import PeriodicSweeper

__all__ = [
    "AggregateResult",
    "DataUnavailable",
    "PeriodicSweeper",
    "QuoteService",
    "QuoteUnavailable",
    "SupplyAggregator",
]
