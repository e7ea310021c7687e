"""Result aggregator — the single consumer of the result queue."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from langchain_core.documents import Document

    from batch_rag.batching.models import Batch
    from batch_rag.batching.queues import BatchQueue

logger = logging.getLogger(__name__)


class ResultAggregator:
    """Concatenate every successful batch into one flat list.

    Workers finish at different speeds, so by default batches are appended
    in *arrival* order. With ``preserve_order=True`` they are re-sorted by
    their dispatch index first, which restores the input order for
    order-preserving transforms.
    """

    def __init__(self, preserve_order: bool = False) -> None:
        self.preserve_order = preserve_order
        self.batches_received = 0

    def drain(self, results: BatchQueue[Batch]) -> list[Document]:
        """Consume *results* until it is closed and return all items.

        An empty list is a valid outcome: it means no batch succeeded.
        """
        received: list[Batch] = []
        for batch in results.consume():
            received.append(batch)
            logger.debug("Received batch %d (%d items)", batch.index, len(batch))
        self.batches_received = len(received)

        if self.preserve_order:
            received.sort(key=lambda b: b.index)

        items: list[Document] = []
        for batch in received:
            items.extend(batch.items)
        return items
