"""Concurrent search across every configured stock photo provider.

Usage Example
-------------
    >>> aggregator = ProviderAggregator.from_config(config)
    >>> if aggregator.is_configured:
    ...     results = await aggregator.search("mountain lake", orientation="landscape")

Join semantics
--------------
One request per configured provider is dispatched at once and joined with
``asyncio.gather(..., return_exceptions=True)``.  The aggregate is the union of
every provider that answered; a provider that raised or timed out is logged and
contributes nothing.  Unconfigured providers are skipped without counting as
failures.  Only when every configured provider fails is the first failure
raised, classified like any upstream error.  The merged list is shuffled once
so no provider always fills the top of the grid.
"""

import asyncio
import logging
import random

import httpx

from contentcanvas.core.config import ContentCanvasConfig
from contentcanvas.core.errors import ProvidersNotConfiguredError, ValidationError, to_canvas_error
from contentcanvas.core.images import bytes_to_data_url, decode_image, encode_image
from contentcanvas.stock.providers import (
    ANY_FILTER,
    StockProvider,
    StockSearchResult,
    providers_from_config,
)

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 3


class ProviderAggregator:
    """Fan-out search over independent stock providers.

    Attributes
    ----------
    providers : list[StockProvider]
        All known providers, configured or not
    timeout : float
        Per-request timeout in seconds
    """

    def __init__(
        self,
        providers: list[StockProvider],
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.providers = providers
        self.timeout = timeout
        self._transport = transport
        self._rng = rng or random.Random()

    @classmethod
    def from_config(
        cls,
        config: ContentCanvasConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "ProviderAggregator":
        return cls(
            providers_from_config(config),
            timeout=config.request_timeout_seconds,
            transport=transport,
        )

    @property
    def configured_providers(self) -> list[StockProvider]:
        return [p for p in self.providers if p.is_configured]

    @property
    def is_configured(self) -> bool:
        """True when at least one provider has a credential."""
        return bool(self.configured_providers)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            transport=self._transport,
        )

    async def search(
        self,
        query: str,
        orientation: str = ANY_FILTER,
        color: str = ANY_FILTER,
    ) -> list[StockSearchResult]:
        """Search all configured providers concurrently.

        Args:
            query: Search terms
            orientation: ``any``, ``landscape``, ``portrait`` or ``square``
            color: ``any`` or a colour name

        Returns:
            Union of the results of every provider that succeeded, shuffled

        Raises:
            ValidationError: If the query is empty
            ProvidersNotConfiguredError: If no provider has a credential
            ContentCanvasError: If every configured provider failed
        """
        if not query or not query.strip():
            raise ValidationError("A search query is required.")

        providers = self.configured_providers
        if not providers:
            raise ProvidersNotConfiguredError()

        query = query.strip()
        async with self._client() as client:
            outcomes = await asyncio.gather(
                *(p.search(client, query, orientation, color) for p in providers),
                return_exceptions=True,
            )

        merged: list[StockSearchResult] = []
        failures: list[BaseException] = []
        for provider, outcome in zip(providers, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning(f"Stock provider {provider.name} failed for '{query}': {outcome!r}")
                failures.append(outcome)
                continue
            merged.extend(outcome)

        if len(failures) == len(providers):
            raise to_canvas_error(failures[0], source="stock_search", query=query)

        self._rng.shuffle(merged)
        logger.info(
            f"Stock search '{query}' returned {len(merged)} results "
            f"from {len(providers)} provider(s)"
        )
        return merged

    @property
    def image_hosts(self) -> frozenset[str]:
        """Every host a stock photo may be downloaded from."""
        return frozenset().union(*(p.image_hosts for p in self.providers))

    def check_image_url(self, url: str) -> httpx.URL:
        """Accept only https URLs on a provider's image host.

        Raises:
            ValidationError: If the URL is missing, malformed or points elsewhere
        """
        if not url:
            raise ValidationError("An image URL is required.")
        try:
            parsed = httpx.URL(url)
        except httpx.InvalidURL as e:
            raise ValidationError("The image URL is not valid.") from e
        if parsed.scheme != "https" or parsed.host not in self.image_hosts:
            logger.warning(f"Refused stock download from {url!r}")
            raise ValidationError("Images can only be fetched from a stock provider.")
        return parsed

    async def fetch_as_data_url(self, url: str) -> str:
        """Download a chosen photo and convert it to a PNG data URL.

        Redirects are followed by hand, at most ``MAX_REDIRECTS`` times, and
        every hop must pass :meth:`check_image_url`.

        Raises:
            ValidationError: If the URL is not a provider image URL or the
                payload is not an image
            ContentCanvasError: Classified download failure
        """
        target = self.check_image_url(url)
        try:
            async with self._client() as client:
                for _ in range(MAX_REDIRECTS + 1):
                    response = await client.get(target, follow_redirects=False)
                    if response.next_request is None:
                        break
                    target = self.check_image_url(str(response.next_request.url))
                else:
                    raise ValidationError("The image URL redirected too many times.")
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise to_canvas_error(e, source="stock_fetch", url=url) from e

        mime_type = response.headers.get("content-type", "image/png").split(";")[0]
        image = decode_image(bytes_to_data_url(response.content, mime_type))
        return encode_image(image)
