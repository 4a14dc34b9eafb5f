"""
Shared HTTP access for the enrichment collaborators.

One httpx.Client per collaborator set, with a browser User-Agent and a
per-request timeout. Every call checks the pipeline context first and
maps failures into the catalog taxonomy:

- transport failure or non-2xx status -> GettingURLError
- body that is not JSON when JSON was expected -> ParsingError
- body that cannot be parsed as HTML -> GettingDocumentError
"""

import logging
from typing import Any, Dict, Optional

import httpx
from bs4 import BeautifulSoup
from django.conf import settings

from catalog.exceptions import CleanUpError, GettingDocumentError, GettingURLError, ParsingError

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 20


class HttpFetcher:
    """Synchronous HTTP fetcher returning JSON payloads or parsed documents."""

    DEFAULT_USER_AGENT = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )

    DEFAULT_HEADERS = {
        "Accept": "text/html,application/xhtml+xml,application/json;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
        "Accept-Encoding": "gzip, deflate",
    }

    def __init__(self, timeout: Optional[float] = None, client: Optional[httpx.Client] = None):
        """
        Args:
            timeout: Per-request timeout in seconds (defaults to settings.DEVICE_CATALOG_REQUEST_TIMEOUT)
            client: Pre-built httpx client (tests pass one with a MockTransport)
        """
        self.timeout = (
            timeout
            if timeout is not None
            else getattr(settings, "DEVICE_CATALOG_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT)
        )
        self._client = client or httpx.Client(
            timeout=self.timeout,
            follow_redirects=True,
            headers={"User-Agent": self.DEFAULT_USER_AGENT, **self.DEFAULT_HEADERS},
        )

    def get(self, url: str, ctx, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        ctx.check(f"GET {url}")
        try:
            response = self._client.get(url, params=params)
            response.raise_for_status()
            return response

        except httpx.TimeoutException as e:
            logger.warning(f"Timeout fetching {url}: {e}")
            raise GettingURLError(f"timeout after {self.timeout}s", url=url) from e

        except httpx.HTTPStatusError as e:
            logger.warning(f"HTTP {e.response.status_code} fetching {url}")
            raise GettingURLError(f"HTTP error {e.response.status_code}", url=url) from e

        except httpx.HTTPError as e:
            logger.warning(f"Failed to fetch {url}: {e}")
            raise GettingURLError(f"request failed: {e}", url=url) from e

    def get_json(self, url: str, ctx, params: Optional[Dict[str, Any]] = None) -> Any:
        response = self.get(url, ctx, params=params)
        try:
            return response.json()
        except ValueError as e:
            logger.warning(f"Invalid JSON from {url}: {e}")
            raise ParsingError(f"invalid JSON response: {e}", url=url) from e

    def post_json(self, url: str, payload: Dict[str, Any], ctx, params: Optional[Dict[str, Any]] = None) -> Any:
        """POST a JSON payload and return the decoded answer."""
        ctx.check(f"POST {url}")
        try:
            response = self._client.post(url, json=payload, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise GettingURLError(f"HTTP error {e.response.status_code}", url=url) from e
        except httpx.HTTPError as e:
            raise GettingURLError(f"request failed: {e}", url=url) from e

        try:
            return response.json()
        except ValueError as e:
            raise ParsingError(f"invalid JSON response: {e}", url=url) from e

    def get_document(self, url: str, ctx) -> BeautifulSoup:
        response = self.get(url, ctx)
        try:
            return BeautifulSoup(response.text, "html.parser")
        except Exception as e:
            logger.warning(f"Failed to parse document from {url}: {e}")
            raise GettingDocumentError(f"failed to parse document: {e}", url=url) from e

    def close(self) -> None:
        try:
            self._client.close()
        except httpx.HTTPError as e:
            raise CleanUpError(f"failed to close HTTP client: {e}") from e
