"""Fruityvice catalog API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from fruit_catalog.errors import CatalogFetchError


class CatalogClient(Protocol):
    """Interface for fetching the remote fruit catalog."""

    async def fetch_all(self) -> list[dict[str, object]]:
        """Fetch every fruit and return the raw API data."""


@dataclass
class HttpxCatalogClient(CatalogClient):
    """HTTPX-backed Fruityvice client."""

    url: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 30.0

    @classmethod
    def create(cls, url: str, timeout_seconds: float = 30.0) -> "HttpxCatalogClient":
        """Create a catalog client with a managed httpx session."""
        return cls(
            url=url,
            http_client=httpx.AsyncClient(),
            timeout_seconds=timeout_seconds,
        )

    async def fetch_all(self) -> list[dict[str, object]]:
        """Fetch the full fruit list."""
        try:
            response = await self.http_client.get(
                self.url,
                headers={"Accept": "application/json"},
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as exc:
            raise CatalogFetchError(
                f"Catalog request timed out after {self.timeout_seconds}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise CatalogFetchError(f"Catalog request failed: {exc}") from exc
        except ValueError as exc:
            raise CatalogFetchError("Catalog response is not valid JSON") from exc
        if not isinstance(payload, list):
            raise CatalogFetchError("Catalog response is not a JSON array")
        return payload

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
