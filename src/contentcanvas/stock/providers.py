"""Stock photo provider clients.

Each provider speaks its own HTTP API and returns its own JSON shape.  A
provider subclass knows three things:

- how to authenticate (header or query parameter)
- how to translate the shared ``orientation`` / ``color`` filters into its own
  query parameters
- how to normalize one native result into a :class:`StockSearchResult`

Result ids are namespaced with the provider name (``pexels-123``), so results
from different providers never collide once merged.

A provider raises on any failure (HTTP status, transport error, unexpected
payload).  Tolerating those failures is the aggregator's job.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

ANY_FILTER = "any"

PIXABAY_COLORS = frozenset(
    ["red", "orange", "yellow", "green", "blue", "purple", "pink", "brown", "black", "white", "gray"]
)


class StockSearchResult(BaseModel):
    """Provider-independent stock photo record."""

    id: str = Field(..., description="Provider-qualified identifier, e.g. 'pexels-123'.")
    alt_text: str = Field(..., description="Description of the photo.")
    attribution_name: str = Field(..., description="Photographer or uploader to credit.")
    thumbnail_url: str = Field(..., description="Small image for the results grid.")
    full_url: str = Field(..., description="Large image fetched when the photo is chosen.")
    provider_name: str = Field(..., description="Provider the result came from.")


class StockProvider(ABC):
    """Base class for one stock photo search API.

    Attributes
    ----------
    name : str
        Lowercase provider name, also used as the id prefix
    search_url : str
        Endpoint queried by :meth:`search`
    image_hosts : frozenset[str]
        Hosts serving the provider's photo files; only these are downloaded
    api_key : str | None
        Credential; providers without one are skipped by the aggregator
    per_page : int
        Number of results requested
    """

    name: str = "base"
    search_url: str = ""
    image_hosts: frozenset[str] = frozenset()
    fallback_alt_text: str = "Stock image"

    def __init__(self, api_key: str | None, per_page: int = 12) -> None:
        self.api_key = api_key
        self.per_page = per_page

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def headers(self) -> dict[str, str]:
        return {}

    @abstractmethod
    def build_params(self, query: str, orientation: str, color: str) -> dict[str, Any]:
        """Translate the shared search filters into query parameters."""

    @abstractmethod
    def results_of(self, data: dict[str, Any]) -> list[dict[str, Any]]:
        """Extract the list of native results from a response payload."""

    @abstractmethod
    def normalize(self, item: dict[str, Any]) -> StockSearchResult:
        """Convert one native result."""

    async def search(
        self,
        client: httpx.AsyncClient,
        query: str,
        orientation: str = ANY_FILTER,
        color: str = ANY_FILTER,
    ) -> list[StockSearchResult]:
        """Query the provider and return normalized results.

        Raises:
            httpx.HTTPStatusError: On a non-2xx response
            httpx.RequestError: On transport failures
            KeyError, TypeError, ValueError: On an unexpected payload shape
        """
        response = await client.get(
            self.search_url,
            params=self.build_params(query, orientation, color),
            headers=self.headers(),
        )
        response.raise_for_status()
        results = [self.normalize(item) for item in self.results_of(response.json())]
        logger.debug(f"{self.name} returned {len(results)} results for '{query}'")
        return results


class PexelsProvider(StockProvider):
    name = "pexels"
    search_url = "https://api.pexels.com/v1/search"
    image_hosts = frozenset(["images.pexels.com"])
    fallback_alt_text = "Pexels image"

    def headers(self) -> dict[str, str]:
        return {"Authorization": self.api_key or ""}

    def build_params(self, query: str, orientation: str, color: str) -> dict[str, Any]:
        params: dict[str, Any] = {"query": query, "per_page": self.per_page}
        if orientation and orientation != ANY_FILTER:
            params["orientation"] = orientation
        if color and color != ANY_FILTER:
            params["color"] = color
        return params

    def results_of(self, data: dict[str, Any]) -> list[dict[str, Any]]:
        return data["photos"]

    def normalize(self, item: dict[str, Any]) -> StockSearchResult:
        return StockSearchResult(
            id=f"pexels-{item['id']}",
            alt_text=item.get("alt") or self.fallback_alt_text,
            attribution_name=item.get("photographer") or "",
            thumbnail_url=item["src"]["medium"],
            full_url=item["src"]["large2x"],
            provider_name=self.name,
        )


class UnsplashProvider(StockProvider):
    name = "unsplash"
    search_url = "https://api.unsplash.com/search/photos"
    image_hosts = frozenset(["images.unsplash.com", "plus.unsplash.com"])
    fallback_alt_text = "Unsplash image"

    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Client-ID {self.api_key}"}

    def build_params(self, query: str, orientation: str, color: str) -> dict[str, Any]:
        params: dict[str, Any] = {"query": query, "per_page": self.per_page}
        if orientation and orientation != ANY_FILTER:
            # Unsplash calls square results "squarish".
            params["orientation"] = "squarish" if orientation == "square" else orientation
        if color and color != ANY_FILTER:
            params["color"] = color
        return params

    def results_of(self, data: dict[str, Any]) -> list[dict[str, Any]]:
        return data["results"]

    def normalize(self, item: dict[str, Any]) -> StockSearchResult:
        return StockSearchResult(
            id=f"unsplash-{item['id']}",
            alt_text=item.get("alt_description") or self.fallback_alt_text,
            attribution_name=(item.get("user") or {}).get("name") or "",
            thumbnail_url=item["urls"]["regular"],
            full_url=item["urls"]["full"],
            provider_name=self.name,
        )


def pixabay_orientation(orientation: str) -> str:
    """Map the shared orientation onto Pixabay's vocabulary."""
    if orientation == "landscape":
        return "horizontal"
    if orientation == "portrait":
        return "vertical"
    return "all"


class PixabayProvider(StockProvider):
    name = "pixabay"
    search_url = "https://pixabay.com/api/"
    image_hosts = frozenset(["pixabay.com", "cdn.pixabay.com"])
    fallback_alt_text = "Pixabay image"

    def build_params(self, query: str, orientation: str, color: str) -> dict[str, Any]:
        params: dict[str, Any] = {
            "key": self.api_key,
            "q": query,
            "per_page": self.per_page,
            "image_type": "photo",
        }
        mapped = pixabay_orientation(orientation)
        if mapped != "all":
            params["orientation"] = mapped
        if color in PIXABAY_COLORS:
            params["colors"] = color
        return params

    def results_of(self, data: dict[str, Any]) -> list[dict[str, Any]]:
        return data["hits"]

    def normalize(self, item: dict[str, Any]) -> StockSearchResult:
        return StockSearchResult(
            id=f"pixabay-{item['id']}",
            alt_text=item.get("tags") or self.fallback_alt_text,
            attribution_name=item.get("user") or "",
            thumbnail_url=item["webformatURL"],
            full_url=item["largeImageURL"],
            provider_name=self.name,
        )


def providers_from_config(config) -> list[StockProvider]:
    """Build the three providers from a :class:`ContentCanvasConfig`."""
    return [
        PexelsProvider(config.pexels_api_key, config.stock_per_page),
        UnsplashProvider(config.unsplash_access_key, config.stock_per_page),
        PixabayProvider(config.pixabay_api_key, config.stock_per_page),
    ]
