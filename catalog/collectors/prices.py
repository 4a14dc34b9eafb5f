"""
Price and price category enrichment.
"""

import logging
from typing import Optional

from django.conf import settings

from catalog.exceptions import ParsingError
from catalog.types import DeviceLocator

from .base import Enricher
from .http import HttpFetcher
from .parsing import extract_float
from .search import CustomSearchClient, find_confirmed_page

logger = logging.getLogger(__name__)

DEFAULT_PRICE_SITE = "zap.co.il"
PRICE_SELECTOR = "h2.price-value.total"

PRICE_PAGE_INSTRUCTION = (
    'You get a phone model in the format "[brand] [phone name]" and a description of '
    "a webpage. You need to return TRUE if the webpage is solely about the current "
    "phone model, or FALSE otherwise"
)


class PriceEnricher(Enricher):
    """Finds the device on the price comparison site and reads its price."""

    name = "price"

    def __init__(
        self,
        fetcher: HttpFetcher,
        search: CustomSearchClient,
        ai_client,
        engine_id: Optional[str] = None,
        site_domain: Optional[str] = None,
    ):
        self.fetcher = fetcher
        self.search = search
        self.ai_client = ai_client
        self.engine_id = engine_id or getattr(settings, "PRICE_SEARCH_ENGINE_ID", "")
        self.site_domain = site_domain or getattr(settings, "PRICE_SITE_DOMAIN", DEFAULT_PRICE_SITE)

    def enrich(self, device, locator: DeviceLocator, ctx) -> None:
        url = find_confirmed_page(
            self.search,
            self.ai_client,
            query=f"{device.full_name} price",
            engine_id=self.engine_id,
            domain=self.site_domain,
            full_name=device.full_name,
            instruction=PRICE_PAGE_INSTRUCTION,
            ctx=ctx,
        )

        document = self.fetcher.get_document(url, ctx)
        element = document.select_one(PRICE_SELECTOR)
        price = extract_float(element.get_text()) if element else None
        if not price:
            raise ParsingError("no price on price page", device_name=device.full_name, url=url)

        device.real_price = price
        logger.debug(f"{device.full_name} costs {price}")


class PriceCategoryEnricher(Enricher):
    """Classifies the device's launch price bracket with the model."""

    name = "price_category"

    def __init__(self, ai_client):
        self.ai_client = ai_client

    def enrich(self, device, locator: DeviceLocator, ctx) -> None:
        device.price_category = self.ai_client.classify_price_category(device.full_name, ctx)
