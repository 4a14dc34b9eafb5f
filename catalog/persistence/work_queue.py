"""
Bounded FIFO of discovered devices waiting for enrichment.

Entries live in the QueueEntry table and the size in the QueueCounter
singleton. Both are written inside one transaction per enqueue or
dequeue, so a reader never sees the counter disagree with the entries.
"""

import logging
import random
from typing import Mapping, Optional

from django.conf import settings
from django.db import transaction

from catalog.exceptions import EmptyQueueError
from catalog.models import Device, QueueCounter, QueueEntry
from catalog.types import DeviceLocator

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_CAPACITY = 30


class WorkQueue:
    """
    Capacity-limited queue of DeviceLocator entries.

    There is one enqueuer and one dequeuer, so the only locking needed is
    the row lock on the counter inside each transaction.
    """

    def __init__(self, capacity: Optional[int] = None, rng: Optional[random.Random] = None):
        """
        Initialize the queue.

        Args:
            capacity: Maximum number of entries (defaults to settings.DEVICE_CATALOG_QUEUE_CAPACITY)
            rng: Random source used to sample candidates
        """
        self.capacity = (
            capacity
            if capacity is not None
            else getattr(settings, "DEVICE_CATALOG_QUEUE_CAPACITY", DEFAULT_QUEUE_CAPACITY)
        )
        self._random = rng or random.Random()

    def size(self) -> int:
        return QueueCounter.load().size

    def enqueue_batch(self, candidates: Mapping[str, DeviceLocator], ctx) -> int:
        """
        Top the queue up from a batch of discovered devices.

        Candidates already in the catalog or already queued are skipped.
        The rest are sampled uniformly, without repeats, up to the
        remaining capacity.

        Args:
            candidates: Discovered devices keyed by name
            ctx: PipelineContext

        Returns:
            Number of entries inserted
        """
        ctx.check("enqueue_batch")

        with transaction.atomic():
            counter = QueueCounter.load(for_update=True)
            remaining = self.capacity - counter.size
            if remaining <= 0:
                logger.info(f"Queue full ({counter.size}/{self.capacity}), nothing enqueued")
                return 0

            names = list(candidates)
            in_catalog = set(
                Device.objects.filter(name__in=names).values_list("name", flat=True)
            )
            queued = set(
                QueueEntry.objects.filter(name__in=names).values_list("name", flat=True)
            )
            fresh = [name for name in names if name not in in_catalog and name not in queued]

            chosen = self._random.sample(fresh, min(remaining, len(fresh)))
            if not chosen:
                logger.info("No new devices to enqueue")
                return 0

            QueueEntry.objects.bulk_create(
                [
                    QueueEntry(
                        name=name,
                        detail=candidates[name].detail,
                        image=candidates[name].image,
                    )
                    for name in chosen
                ]
            )
            counter.size += len(chosen)
            counter.save(update_fields=["size"])

        logger.info(
            f"Enqueued {len(chosen)} of {len(fresh)} new devices "
            f"(queue size {counter.size}/{self.capacity})"
        )
        return len(chosen)

    def dequeue(self, ctx) -> DeviceLocator:
        """
        Remove and return the oldest entry.

        Raises:
            EmptyQueueError: If the queue holds no entries
        """
        ctx.check("dequeue")

        with transaction.atomic():
            counter = QueueCounter.load(for_update=True)
            entry = QueueEntry.objects.select_for_update().order_by("id").first()
            if entry is None:
                raise EmptyQueueError("queue is empty")

            locator = DeviceLocator(name=entry.name, detail=entry.detail, image=entry.image)
            entry.delete()
            counter.size = max(counter.size - 1, 0)
            counter.save(update_fields=["size"])

        logger.debug(f"Dequeued {locator.name} (queue size {counter.size})")
        return locator

    def clear(self) -> None:
        with transaction.atomic():
            QueueEntry.objects.all().delete()
            counter = QueueCounter.load(for_update=True)
            counter.size = 0
            counter.save(update_fields=["size"])
