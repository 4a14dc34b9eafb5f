"""
Persistence contract used by the pipeline.

Every method takes the PipelineContext and raises PipelineCancelled
without side effects when it is already cancelled. Failures surface as
catalog exceptions (see catalog.exceptions), never as driver errors.
"""

from abc import ABC, abstractmethod
from typing import List, Mapping, Tuple

from catalog.scoring import MinMaxValues
from catalog.types import BoxPair, DeviceFilters, DeviceLocator


class DatabaseInterface(ABC):
    """Storage operations the pipeline and the API depend on."""

    @abstractmethod
    def connect(self, ctx) -> None:
        ...

    @abstractmethod
    def disconnect(self) -> None:
        ...

    @abstractmethod
    def is_up(self, ctx) -> bool:
        ...

    @abstractmethod
    def upload_device(self, device, ctx):
        """Insert a fully enriched device and count it in the unvalidated box."""

    @abstractmethod
    def get_min_max(self, ctx) -> BoxPair:
        ...

    @abstractmethod
    def normalize_unvalidated(self, new_box: MinMaxValues, ctx) -> int:
        """Rescore every device against new_box and store it as the unvalidated box."""

    @abstractmethod
    def validate(self, new_box: MinMaxValues, ctx) -> int:
        """Promote new_box and the unvalidated scores to validated."""

    @abstractmethod
    def is_interrupted_validation(self, ctx) -> bool:
        ...

    @abstractmethod
    def resume_interrupted_validation(self, ctx) -> bool:
        ...

    @abstractmethod
    def enqueue_batch(self, candidates: Mapping[str, DeviceLocator], ctx) -> int:
        ...

    @abstractmethod
    def dequeue(self, ctx) -> DeviceLocator:
        ...

    @abstractmethod
    def reestimate_benchmarks(self, ctx) -> List:
        """Re-estimate every estimated device; returns the updated devices."""

    @abstractmethod
    def get_last_year_equivalent(self, device, ctx) -> Tuple[float, float]:
        """Substitute (single core, multi core) scores for a device."""

    @abstractmethod
    def reset_all(self, ctx) -> None:
        ...

    @abstractmethod
    def top_n(self, filters: DeviceFilters, ctx) -> List:
        ...
