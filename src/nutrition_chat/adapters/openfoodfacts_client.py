"""Open Food Facts product search client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

SEARCH_FIELDS = (
    "code",
    "product_name",
    "product_name_de",
    "brands",
    "categories",
    "nutriments",
    "serving_size",
    "quantity",
)


class ProductLookupClient(Protocol):
    """Interface for remote product searches."""

    async def search_products(
        self, query: str, page_size: int = 3
    ) -> dict[str, object]:
        """Search products by free text and return raw API data."""


@dataclass
class HttpxOpenFoodFactsClient(ProductLookupClient):
    """HTTPX-backed Open Food Facts client."""

    base_url: str
    user_agent: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 15

    @classmethod
    def create(
        cls, base_url: str, user_agent: str, timeout_seconds: float = 15
    ) -> "HttpxOpenFoodFactsClient":
        """Create a client with a managed httpx session."""
        return cls(
            base_url=base_url,
            user_agent=user_agent,
            http_client=httpx.AsyncClient(),
            timeout_seconds=timeout_seconds,
        )

    async def search_products(
        self, query: str, page_size: int = 3
    ) -> dict[str, object]:
        """Search products by free text."""
        url = f"{self.base_url}/cgi/search.pl"
        response = await self.http_client.get(
            url,
            params={
                "search_terms": query,
                "search_simple": 1,
                "action": "process",
                "json": 1,
                "page_size": page_size,
                "fields": ",".join(SEARCH_FIELDS),
            },
            headers={"User-Agent": self.user_agent},
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
