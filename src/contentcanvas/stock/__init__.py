"""Stock photo search.

Modules
-------
providers
    Pexels, Unsplash and Pixabay clients and their result normalizers.
aggregator
    Concurrent, partial-failure-tolerant search over every configured provider.
"""

from contentcanvas.stock.aggregator import ProviderAggregator
from contentcanvas.stock.providers import (
    PexelsProvider,
    PixabayProvider,
    StockProvider,
    StockSearchResult,
    UnsplashProvider,
)

__all__ = [
    "ProviderAggregator",
    "StockProvider",
    "StockSearchResult",
    "PexelsProvider",
    "UnsplashProvider",
    "PixabayProvider",
]
