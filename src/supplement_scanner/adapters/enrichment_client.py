"""HTTP client for the supplement enrichment function."""

from dataclasses import dataclass
from uuid import UUID

import httpx

from supplement_scanner.services.enrichment import EnrichmentClient


@dataclass
class HttpxEnrichmentClient(EnrichmentClient):
    """HTTPX-backed enrichment client."""

    url: str
    api_key: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, url: str, api_key: str) -> "HttpxEnrichmentClient":
        """Create an enrichment client with a managed httpx session."""
        return cls(url=url, api_key=api_key, http_client=httpx.AsyncClient())

    async def enrich(
        self, product_id: UUID, label_data: dict[str, object]
    ) -> dict[str, object]:
        """Request enrichment for a product."""
        response = await self.http_client.post(
            self.url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "apikey": self.api_key,
            },
            json={"productId": str(product_id), "labelData": label_data},
            timeout=None,
        )
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
