"""
Catalog persistence: work queue, normalization, validation, estimation.
"""

from .base import DatabaseInterface
from .django_database import DjangoCatalogDatabase
from .estimator import BenchmarkEstimator, decrement_generation
from .normalizer import MinMaxNormalizer
from .validator import ScoreValidator
from .work_queue import WorkQueue

__all__ = [
    "DatabaseInterface",
    "DjangoCatalogDatabase",
    "BenchmarkEstimator",
    "decrement_generation",
    "MinMaxNormalizer",
    "ScoreValidator",
    "WorkQueue",
]
