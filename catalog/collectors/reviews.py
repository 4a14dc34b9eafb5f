"""
Review enrichment from configurable review sites.

Each ReviewSource knows its domain and how to read its own pages. The
enricher locates each source's review of the device, scores the text
with the sentiment API, blends in the star rating when the page has
one, and averages across sources.
"""

import logging
import re
from typing import Dict, List, Optional, Sequence, Type

from django.conf import settings

from catalog.exceptions import ParsingError
from catalog.scoring import rate_review
from catalog.types import DeviceLocator

from .base import Enricher, ReviewSource
from .http import HttpFetcher
from .search import CustomSearchClient, find_confirmed_page

logger = logging.getLogger(__name__)

REVIEW_PAGE_INSTRUCTION = (
    'You get a phone model in the format "[brand] [phone name]" and a description of a '
    "review. You need to return TRUE if the review is about the current phone model, "
    "or FALSE otherwise. Ignore suffixes like 5G, focus on model name and number"
)


def _paragraph_text(document, device_name: str) -> str:
    paragraphs = [p.get_text(strip=True) for p in document.select("p")]
    paragraphs = [text for text in paragraphs if text]
    if not paragraphs:
        raise ParsingError("review page has no text", device_name=device_name)
    return " ".join(paragraphs)


class CnetReviewSource(ReviewSource):
    """CNET reviews, rated out of 10 in one of three page layouts."""

    name = "cnet"
    domain = "cnet.com"

    RATING_SELECTORS = (
        'div[data-cy="reviewRating"].c-shortcodeReviewRedesign_rating.g-text-bold',
        "div.c-reviewCard_data-score.g-text-bold",
        'div[data-cy="reviewRating"].c-shortcodeReview_rating.g-text-bold',
    )

    def review_text(self, document, device_name: str) -> str:
        return _paragraph_text(document, device_name)

    def stars(self, document, device_name: str) -> Optional[float]:
        for selector in self.RATING_SELECTORS:
            element = document.select_one(selector)
            text = element.get_text(strip=True) if element else ""
            if len(text) < 3:
                continue
            try:
                return float(text[:3]) / 2
            except ValueError:
                continue

        logger.debug(f"No CNET rating found for {device_name}")
        return None


class TomsGuideReviewSource(ReviewSource):
    """Tom's Guide reviews, rated out of 5 in an aria-label."""

    name = "tomsguide"
    domain = "tomsguide.com"

    RATING_SELECTOR = "span.chunk.rating"

    def review_text(self, document, device_name: str) -> str:
        return _paragraph_text(document, device_name)

    def stars(self, document, device_name: str) -> Optional[float]:
        element = document.select_one(self.RATING_SELECTOR)
        label = element.get("aria-label", "") if element else ""
        match = re.search(r"\d+(?:\.\d+)?", label)
        if match is None:
            logger.debug(f"No Tom's Guide rating found for {device_name}")
            return None
        return float(match.group())


REVIEW_SOURCES: Dict[str, Type[ReviewSource]] = {
    CnetReviewSource.name: CnetReviewSource,
    TomsGuideReviewSource.name: TomsGuideReviewSource,
}


def build_review_sources(names: Optional[Sequence[str]] = None) -> List[ReviewSource]:
    """
    Instantiate review sources by name.

    Args:
        names: Source names (defaults to settings.DEVICE_CATALOG_REVIEW_SOURCES)

    Raises:
        ValueError: For an unknown source name
    """
    names = names or getattr(
        settings, "DEVICE_CATALOG_REVIEW_SOURCES", list(REVIEW_SOURCES)
    )
    sources = []
    for name in names:
        if name not in REVIEW_SOURCES:
            raise ValueError(f"Unknown review source {name!r}; choose from {sorted(REVIEW_SOURCES)}")
        sources.append(REVIEW_SOURCES[name]())
    return sources


class ReviewEnricher(Enricher):
    """Averages the sentiment of every configured review source."""

    name = "review"

    def __init__(
        self,
        fetcher: HttpFetcher,
        search: CustomSearchClient,
        ai_client,
        sources: Sequence[ReviewSource],
        engine_id: Optional[str] = None,
    ):
        if not sources:
            raise ValueError("ReviewEnricher needs at least one review source")
        self.fetcher = fetcher
        self.search = search
        self.ai_client = ai_client
        self.sources = list(sources)
        self.engine_id = engine_id or getattr(settings, "REVIEW_SEARCH_ENGINE_ID", "")

    def enrich(self, device, locator: DeviceLocator, ctx) -> None:
        sentiments = []
        magnitudes = []

        for source in self.sources:
            sentiment, magnitude = self._score_source(source, device, ctx)
            sentiments.append(sentiment)
            magnitudes.append(magnitude)

        device.review_sentiment = sum(sentiments) / len(sentiments)
        device.review_magnitude = sum(magnitudes) / len(magnitudes)

    def _score_source(self, source: ReviewSource, device, ctx):
        url = find_confirmed_page(
            self.search,
            self.ai_client,
            query=f"{device.full_name} review {source.domain}",
            engine_id=self.engine_id,
            domain=source.domain,
            full_name=device.full_name,
            instruction=REVIEW_PAGE_INSTRUCTION,
            ctx=ctx,
        )
        document = self.fetcher.get_document(url, ctx)

        text, stars = source.review(document, device.full_name)
        result = self.ai_client.analyze_sentiment(text, ctx)

        logger.debug(
            f"{source.name} review of {device.full_name}: "
            f"sentiment={result.score:.2f}, magnitude={result.magnitude:.2f}, stars={stars}"
        )
        return rate_review(result.score, stars), result.magnitude
