from abc import ABC, abstractmethod
from typing import Any, Dict, List


class Provider(ABC):
    """An upstream the API depends on."""

    name: str

    @abstractmethod
    async def ready(self) -> bool:
        """Whether enough configuration is present to call the upstream"""

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Configuration status reported by /healthz, never an upstream call"""

    async def aclose(self) -> None:
        return None


class SupplyProvider(Provider):
    @abstractmethod
    async def get_supplies(self, asset_types: List[str]) -> Dict[str, int]:
        """Map each known asset type to its raw supply, in one upstream call.

        Unknown asset types are left out of the result rather than raising.
        """


class QuoteProvider(Provider):
    @abstractmethod
    async def get_price(self) -> float:
        """Latest USD price of the configured asset"""
