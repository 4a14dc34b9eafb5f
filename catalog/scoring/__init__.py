"""
Min-max normalization and device scoring.
"""

from .bounds import SCORED_DIMENSIONS, Bounds, MinMaxValues, normalize
from .scores import (
    DeviceScores,
    final_score,
    measurements_for,
    rate_review,
    refresh_rate_score,
    review_score,
    score_device,
)

__all__ = [
    "SCORED_DIMENSIONS",
    "Bounds",
    "MinMaxValues",
    "normalize",
    "DeviceScores",
    "final_score",
    "measurements_for",
    "rate_review",
    "refresh_rate_score",
    "review_score",
    "score_device",
]
