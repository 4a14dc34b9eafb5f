"""
External collaborators: discovery and enrichment sources.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .ai_client import AIClient, SentimentResult
from .base import DiscoverySource, Enricher, ReviewSource
from .benchmarks import GeekbenchEnricher
from .discovery import SpecsApiDiscovery
from .http import HttpFetcher
from .prices import PriceCategoryEnricher, PriceEnricher
from .reviews import ReviewEnricher, build_review_sources
from .search import CustomSearchClient
from .specs import SpecSheetEnricher


@dataclass
class Collaborators:
    """The discovery source and the enrichers, in the order they run."""

    discovery: DiscoverySource
    specs: Enricher
    price: Enricher
    price_category: Enricher
    benchmark: Enricher
    review: Enricher
    closeables: List = field(default_factory=list)

    def close(self) -> None:
        for resource in self.closeables:
            resource.close()


def build_collaborators(review_sources: Optional[List[str]] = None) -> Collaborators:
    """Wire the production collaborators from settings."""
    fetcher = HttpFetcher()
    ai_client = AIClient()
    search = CustomSearchClient(fetcher)

    return Collaborators(
        discovery=SpecsApiDiscovery(fetcher),
        specs=SpecSheetEnricher(fetcher, ai_client),
        price=PriceEnricher(fetcher, search, ai_client),
        price_category=PriceCategoryEnricher(ai_client),
        benchmark=GeekbenchEnricher(fetcher),
        review=ReviewEnricher(fetcher, search, ai_client, build_review_sources(review_sources)),
        closeables=[fetcher, ai_client],
    )


__all__ = [
    "AIClient",
    "SentimentResult",
    "Collaborators",
    "CustomSearchClient",
    "DiscoverySource",
    "Enricher",
    "GeekbenchEnricher",
    "HttpFetcher",
    "PriceCategoryEnricher",
    "PriceEnricher",
    "ReviewEnricher",
    "ReviewSource",
    "SpecSheetEnricher",
    "SpecsApiDiscovery",
    "build_collaborators",
    "build_review_sources",
]
