"""
Review and final score computation.

All functions are pure: a device's scores depend only on its own raw
fields and the bounding box they are normalized against, which is what
makes recomputing the whole catalog idempotent.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from .bounds import (
    BATTERY_CAPACITY,
    MAGNITUDE,
    MULTI_CORE,
    NITS,
    PIXEL_DENSITY,
    SCORED_DIMENSIONS,
    SENTIMENT,
    SINGLE_CORE,
    MinMaxValues,
)

SINGLE_CORE_SHARE = 0.6
MULTI_CORE_SHARE = 0.4

NITS_SHARE = 0.35
PIXEL_DENSITY_SHARE = 0.35
REFRESH_RATE_SHARE = 0.30

# (minimum refresh rate in Hz, score), highest tier first
REFRESH_RATE_TIERS = (
    (144, 1.0),
    (120, 0.8),
    (90, 0.5),
    (60, 0.1),
)

STAR_RATING_SHARE = 0.4
TEXT_SENTIMENT_SHARE = 0.6


@dataclass(frozen=True)
class ScoreWeights:
    benchmark: float
    display: float
    review: float
    battery: float


MEASURED_WEIGHTS = ScoreWeights(benchmark=50, display=20, review=10, battery=10)
# An estimated benchmark is trusted less; its share moves to the measured parts.
ESTIMATED_WEIGHTS = ScoreWeights(benchmark=30, display=25, review=15, battery=15)


@dataclass(frozen=True)
class DeviceScores:
    normalized: Dict[str, float]
    review_score: float
    final_score: float


def measurements_for(device) -> Dict[str, float]:
    """Raw value of every scored dimension for a device."""
    return {
        SENTIMENT: float(device.review_sentiment),
        MAGNITUDE: float(device.review_magnitude),
        SINGLE_CORE: float(device.single_core_score),
        MULTI_CORE: float(device.multi_core_score),
        BATTERY_CAPACITY: float(device.battery_capacity),
        PIXEL_DENSITY: float(device.pixel_density),
        NITS: float(device.nits),
    }


def rate_review(sentiment: float, stars: Optional[float] = None) -> float:
    """
    Blend a text sentiment (-1..1) with a 0-5 star rating when one exists.

    Three stars is neutral, so the rating is re-centred to -1..1 first.
    """
    if stars is None:
        return sentiment
    return sentiment * TEXT_SENTIMENT_SHARE + ((stars - 3) / 2) * STAR_RATING_SHARE


def refresh_rate_score(refresh_rate: int) -> float:
    for threshold, score in REFRESH_RATE_TIERS:
        if refresh_rate >= threshold:
            return score
    return 0.0


def review_score(box: MinMaxValues, sentiment: float, magnitude: float) -> float:
    return box.normalize(SENTIMENT, sentiment) * box.normalize(MAGNITUDE, magnitude)


def weights_for(is_estimated: bool) -> ScoreWeights:
    return ESTIMATED_WEIGHTS if is_estimated else MEASURED_WEIGHTS


def final_score(
    normalized: Dict[str, float],
    refresh_rate: int,
    review: float,
    is_estimated: bool,
) -> float:
    """
    Weighted sum of the benchmark, display, review and battery components.

    Args:
        normalized: Normalized value per scored dimension
        refresh_rate: Display refresh rate in Hz
        review: Review score already normalized against the same box
        is_estimated: Whether the benchmark values are an estimate

    Returns:
        The final score
    """
    weights = weights_for(is_estimated)

    benchmark = (
        normalized[SINGLE_CORE] * SINGLE_CORE_SHARE
        + normalized[MULTI_CORE] * MULTI_CORE_SHARE
    )
    display = (
        normalized[NITS] * NITS_SHARE
        + normalized[PIXEL_DENSITY] * PIXEL_DENSITY_SHARE
        + refresh_rate_score(refresh_rate) * REFRESH_RATE_SHARE
    )

    return (
        weights.benchmark * benchmark
        + weights.display * display
        + weights.review * review
        + weights.battery * normalized[BATTERY_CAPACITY]
    )


def score_device(box: MinMaxValues, device) -> DeviceScores:
    """Normalize a device against a box and compute its review and final scores."""
    raw = measurements_for(device)
    normalized = {
        dimension: box.normalize(dimension, raw[dimension])
        for dimension in SCORED_DIMENSIONS
    }
    review = review_score(box, raw[SENTIMENT], raw[MAGNITUDE])
    return DeviceScores(
        normalized=normalized,
        review_score=review,
        final_score=final_score(
            normalized,
            int(device.refresh_rate),
            review,
            bool(device.is_estimated_benchmark),
        ),
    )
