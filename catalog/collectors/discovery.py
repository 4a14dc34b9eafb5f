"""
Device discovery from the phone-specs catalog API.

Pages through each tracked brand's listing and keeps phones of the
brand's flagship series, skipping tablets, watches, foldables and the
regional or budget variants named in the brand's exclusion list.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from django.conf import settings

from catalog.exceptions import ParsingError
from catalog.types import DeviceLocator

from .base import DiscoverySource
from .http import HttpFetcher
from .parsing import contains_any

logger = logging.getLogger(__name__)

DEFAULT_SPECS_API_URL = "https://phone-specs-api.vercel.app"


@dataclass(frozen=True)
class BrandListing:
    """Where a brand's phones are listed and which of them to keep."""

    brand: str
    directory: str
    series: str
    max_page: int
    excluded_terms: Tuple[str, ...] = ()


TRACKED_BRANDS = (
    BrandListing(
        brand="Apple",
        directory="apple-phones-48",
        series="iphone",
        max_page=4,
        excluded_terms=("ipad", "cdma", "watch"),
    ),
    BrandListing(
        brand="Google",
        directory="google-phones-107",
        series="pixel",
        max_page=1,
        excluded_terms=("tablet", "fold", "watch"),
    ),
    BrandListing(
        brand="Samsung",
        directory="samsung-phones-9",
        series="galaxy",
        max_page=9,
        excluded_terms=(
            "watch", "tab", "flip", "fold", "(india)", "Grand", "Indulge", "Nexus",
            "LTE", "Prevail", "Attain", " Star ", " zoom ", " Duos ", "(", " Pop ",
            " S ", " Young ", " Express ", "Core", "alpha", "Sport", "Edge", "ii",
            " Active ", " Quantum ", " Lite ", " Stellar ", " Apollo ", " Ace ",
            "View", " Light ", "Xcover", "Galaxy M", "Neo",
        ),
    ),
)


class SpecsApiDiscovery(DiscoverySource):
    """Discovers phones listed by the specs API for the tracked brands."""

    def __init__(
        self,
        fetcher: HttpFetcher,
        base_url: Optional[str] = None,
        brands: Tuple[BrandListing, ...] = TRACKED_BRANDS,
    ):
        self.fetcher = fetcher
        self.base_url = (
            base_url or getattr(settings, "DEVICE_SPECS_API_URL", DEFAULT_SPECS_API_URL)
        ).rstrip("/")
        self.brands = brands

    def discover_all(self, ctx) -> Dict[str, DeviceLocator]:
        discovered: Dict[str, DeviceLocator] = {}
        for listing in self.brands:
            found = self._discover_brand(listing, ctx)
            logger.info(f"Discovered {len(found)} {listing.brand} devices")
            discovered.update(found)
        return discovered

    def _discover_brand(self, listing: BrandListing, ctx) -> Dict[str, DeviceLocator]:
        found: Dict[str, DeviceLocator] = {}

        for page in range(1, listing.max_page + 1):
            url = f"{self.base_url}/brands/{listing.directory}"
            payload = self.fetcher.get_json(url, ctx, params={"page": page})

            try:
                phones = payload["data"]["phones"]
            except (KeyError, TypeError) as e:
                raise ParsingError(f"unexpected listing payload for page {page}", url=url) from e

            if not phones:
                logger.debug(f"Finished reading {listing.directory} at page {page}")
                break

            for phone in phones:
                name = (phone.get("phone_name") or "").strip()
                if not name or contains_any(name, listing.excluded_terms):
                    continue
                if listing.series in name.lower():
                    found[name] = DeviceLocator(
                        name=name,
                        detail=phone.get("detail", ""),
                        image=phone.get("image", ""),
                    )

        return found
