"""
Benchmark enrichment from the Geekbench browser charts.

The iOS and Android chart pages list every device with its single-core
and multi-core score in two tabs. A device missing from the chart raises
NoSuchBenchmarkError so the uploader can fall back to an estimate.
"""

import logging
from typing import Optional

from django.conf import settings

from catalog.constants import APPLE_BRAND
from catalog.exceptions import NoSuchBenchmarkError, ParsingError
from catalog.types import DeviceLocator

from .base import Enricher
from .http import HttpFetcher

logger = logging.getLogger(__name__)

DEFAULT_GEEKBENCH_URL = "https://browser.geekbench.com"
SINGLE_CORE_TAB = "div#single-core"
MULTI_CORE_TAB = "div#multi-core"


class GeekbenchEnricher(Enricher):
    """Reads single and multi core scores from the chart pages."""

    name = "benchmark"

    def __init__(self, fetcher: HttpFetcher, base_url: Optional[str] = None):
        self.fetcher = fetcher
        self.base_url = (
            base_url or getattr(settings, "GEEKBENCH_BASE_URL", DEFAULT_GEEKBENCH_URL)
        ).rstrip("/")

    def chart_url(self, brand: str) -> str:
        platform = "ios" if brand == APPLE_BRAND else "android"
        return f"{self.base_url}/{platform}-benchmarks/"

    @staticmethod
    def chart_name(device) -> str:
        # Android charts prefix the brand, iOS charts do not
        return device.name if device.brand == APPLE_BRAND else device.full_name

    def enrich(self, device, locator: DeviceLocator, ctx) -> None:
        url = self.chart_url(device.brand)
        document = self.fetcher.get_document(url, ctx)
        chart_name = self.chart_name(device)

        device.single_core_score = self._score(document, SINGLE_CORE_TAB, chart_name, url)
        device.multi_core_score = self._score(document, MULTI_CORE_TAB, chart_name, url)
        device.is_estimated_benchmark = False

    @staticmethod
    def _score(document, tab_selector: str, chart_name: str, url: str) -> float:
        tab = document.select_one(tab_selector)
        rows = tab.select("tr") if tab else []
        wanted = chart_name.lower()

        for row in rows:
            name_cell = row.select_one("td.name a")
            score_cell = row.select_one("td.score")
            if name_cell is None or score_cell is None:
                continue
            if name_cell.get_text(strip=True).lower() != wanted:
                continue
            try:
                return float(int(score_cell.get_text(strip=True).replace(",", "")))
            except ValueError as e:
                raise ParsingError(
                    f"found {chart_name} but could not read its score",
                    device_name=chart_name,
                    url=url,
                ) from e

        raise NoSuchBenchmarkError(
            f"{chart_name} is not on the benchmark chart", device_name=chart_name, url=url
        )
