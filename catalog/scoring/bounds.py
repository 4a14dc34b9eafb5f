"""
Min-max bounding boxes used to normalize raw device measurements.

A box holds one (min, max) pair per scored dimension plus the number of
devices folded into it. Folding only ever widens a pair, so a box built
from a superset of devices always contains the box built from a subset.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping

SENTIMENT = "sentiment"
MAGNITUDE = "magnitude"
SINGLE_CORE = "single_core"
MULTI_CORE = "multi_core"
BATTERY_CAPACITY = "battery_capacity"
PIXEL_DENSITY = "pixel_density"
NITS = "nits"

SCORED_DIMENSIONS = (
    SENTIMENT,
    MAGNITUDE,
    SINGLE_CORE,
    MULTI_CORE,
    BATTERY_CAPACITY,
    PIXEL_DENSITY,
    NITS,
)

# Sentinels for an empty pair. Finite so the box stays JSON serializable.
EMPTY_MIN = 1e308
EMPTY_MAX = -1e308


def normalize(minimum: float, maximum: float, value: float) -> float:
    """
    Linearly map value into [0, 1] against (minimum, maximum).

    A degenerate pair (min == max, or an empty pair) normalizes to 0.
    """
    if maximum <= minimum:
        return 0.0
    return (value - minimum) / (maximum - minimum)


@dataclass(frozen=True)
class Bounds:
    """Min/max pair for one dimension."""

    min: float = EMPTY_MIN
    max: float = EMPTY_MAX

    @property
    def is_empty(self) -> bool:
        return self.max < self.min

    def expand(self, value: float) -> "Bounds":
        return Bounds(min=min(self.min, value), max=max(self.max, value))

    def contains(self, other: "Bounds") -> bool:
        if other.is_empty:
            return True
        return self.min <= other.min and self.max >= other.max

    def normalize(self, value: float) -> float:
        return normalize(self.min, self.max, value)


def _empty_bounds() -> Dict[str, Bounds]:
    return {dimension: Bounds() for dimension in SCORED_DIMENSIONS}


@dataclass(frozen=True)
class MinMaxValues:
    """
    Bounding box over every scored dimension.

    Instances are immutable; ``fold`` and ``with_device_count`` return
    new boxes.
    """

    bounds: Dict[str, Bounds] = field(default_factory=_empty_bounds)
    device_count: int = 0

    @classmethod
    def default(cls) -> "MinMaxValues":
        return cls()

    def __getitem__(self, dimension: str) -> Bounds:
        return self.bounds[dimension]

    def fold(self, measurements: Mapping[str, float]) -> "MinMaxValues":
        """
        Widen the box so it covers the given measurements.

        Args:
            measurements: Raw value per dimension. Unknown dimensions are ignored.

        Returns:
            New box; the device count is left unchanged.
        """
        bounds = dict(self.bounds)
        for dimension in SCORED_DIMENSIONS:
            if dimension in measurements:
                bounds[dimension] = bounds[dimension].expand(float(measurements[dimension]))
        return MinMaxValues(bounds=bounds, device_count=self.device_count)

    def fold_all(self, measurement_rows: Iterable[Mapping[str, float]]) -> "MinMaxValues":
        box = self
        for measurements in measurement_rows:
            box = box.fold(measurements)
        return box

    def with_device_count(self, device_count: int) -> "MinMaxValues":
        return MinMaxValues(bounds=dict(self.bounds), device_count=device_count)

    def normalize(self, dimension: str, value: float) -> float:
        return self.bounds[dimension].normalize(value)

    def contains(self, other: "MinMaxValues") -> bool:
        """True when every pair of this box covers the matching pair of other."""
        return all(
            self.bounds[dimension].contains(other.bounds[dimension])
            for dimension in SCORED_DIMENSIONS
        )

    def same_bounds(self, other: "MinMaxValues") -> bool:
        """Compare the pairs only, ignoring the device count."""
        return all(
            self.bounds[dimension] == other.bounds[dimension]
            for dimension in SCORED_DIMENSIONS
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            dimension: {"min": pair.min, "max": pair.max}
            for dimension, pair in self.bounds.items()
        }
        data["device_count"] = self.device_count
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MinMaxValues":
        if not data:
            return cls.default()
        bounds = _empty_bounds()
        for dimension in SCORED_DIMENSIONS:
            pair = data.get(dimension)
            if pair:
                bounds[dimension] = Bounds(min=float(pair["min"]), max=float(pair["max"]))
        return cls(bounds=bounds, device_count=int(data.get("device_count", 0)))
