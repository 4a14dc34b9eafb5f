"""
Collaborator contracts the pipeline drives.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

from catalog.types import DeviceLocator


class DiscoverySource(ABC):
    """Finds candidate devices to enqueue."""

    @abstractmethod
    def discover_all(self, ctx) -> Dict[str, DeviceLocator]:
        """All currently known devices keyed by name."""


class Enricher(ABC):
    """
    Fills one section of a device.

    ``enrich`` mutates the unsaved device in place and raises a
    CatalogError on failure.
    """

    name = "enricher"

    @abstractmethod
    def enrich(self, device, locator: DeviceLocator, ctx) -> None:
        ...


class ReviewSource(ABC):
    """
    A review site the review enricher can read.

    Subclasses declare their domain and how to pull the review text and
    star rating out of a review page.
    """

    name = ""
    domain = ""

    @abstractmethod
    def review_text(self, document, device_name: str) -> str:
        ...

    @abstractmethod
    def stars(self, document, device_name: str) -> Optional[float]:
        """Rating on a 0-5 scale, or None when the page shows none."""

    def review(self, document, device_name: str) -> Tuple[str, Optional[float]]:
        return self.review_text(document, device_name), self.stars(document, device_name)
