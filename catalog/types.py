"""
Plain data carriers passed between the pipeline, collaborators and
persistence.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from catalog.scoring import MinMaxValues


@dataclass(frozen=True)
class DeviceLocator:
    """Where to find a discovered device: its spec sheet and image."""

    name: str
    detail: str
    image: str = ""


@dataclass(frozen=True)
class BoxPair:
    """The validated and unvalidated bounding boxes, read together."""

    validated: MinMaxValues
    unvalidated: MinMaxValues


@dataclass
class DeviceFilters:
    """Filters accepted by the top-N query. ``None`` leaves a bound open."""

    min_price: Optional[float] = None
    max_price: Optional[float] = None
    min_display_size: Optional[float] = None
    max_display_size: Optional[float] = None
    min_refresh_rate: Optional[int] = None
    max_refresh_rate: Optional[int] = None
    brands: List[str] = field(default_factory=list)
