"""
Web search used to locate review and price pages for a device.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from django.conf import settings

from catalog.exceptions import FailedAIInstructionError, ParsingError

from .http import HttpFetcher

logger = logging.getLogger(__name__)

CUSTOM_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"


@dataclass
class SearchHit:
    """A single search result."""

    link: str
    title: str = ""
    snippet: str = ""

    @property
    def description(self) -> str:
        return f"{self.title} {self.snippet}".strip()


class CustomSearchClient:
    """Google Custom Search JSON API client."""

    def __init__(self, fetcher: HttpFetcher, api_key: Optional[str] = None):
        self.fetcher = fetcher
        self.api_key = api_key or getattr(settings, "GOOGLE_CUSTOM_SEARCH_KEY", "")

    def search(self, query: str, engine_id: str, ctx) -> List[SearchHit]:
        """
        Run a query against a search engine.

        Args:
            query: Search terms
            engine_id: Custom search engine ID
            ctx: PipelineContext

        Returns:
            Search hits in ranking order
        """
        data = self.fetcher.get_json(
            CUSTOM_SEARCH_URL,
            ctx,
            params={"key": self.api_key, "cx": engine_id, "q": query},
        )
        if not isinstance(data, dict):
            raise ParsingError(f"unexpected search response for {query!r}")

        hits = [
            SearchHit(
                link=item.get("link", ""),
                title=item.get("title", ""),
                snippet=item.get("snippet", ""),
            )
            for item in data.get("items", [])
            if item.get("link")
        ]
        logger.debug(f"Search {query!r} returned {len(hits)} hits")
        return hits


def find_confirmed_page(
    search: CustomSearchClient,
    ai_client,
    query: str,
    engine_id: str,
    domain: str,
    full_name: str,
    instruction: str,
    ctx,
) -> str:
    """
    First search hit on ``domain`` the model confirms is about the device.

    Raises:
        FailedAIInstructionError: If no hit is confirmed
    """
    for hit in search.search(query, engine_id, ctx):
        if domain not in hit.link:
            continue
        if ai_client.is_matching_page(instruction, full_name, hit.description, ctx):
            return hit.link

    raise FailedAIInstructionError(
        f"no confirmed {domain} page for {full_name}",
        device_name=full_name,
    )
