"""Task dispatcher — slices the input into batches and feeds the task queue."""

from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

from batch_rag.batching.models import Batch
from batch_rag.errors import ConfigurationError

if TYPE_CHECKING:
    from langchain_core.documents import Document

    from batch_rag.batching.queues import BatchQueue

logger = logging.getLogger(__name__)


class TaskDispatcher:
    """Single producer of the task queue.

    Parameters
    ----------
    batch_size:
        Maximum number of documents per batch. Must be positive.
    """

    def __init__(self, batch_size: int) -> None:
        if batch_size <= 0:
            raise ConfigurationError(f"batch_size must be positive, got {batch_size}")
        self.batch_size = batch_size

    def split(self, items: Iterable[Document]) -> Iterator[Batch]:
        """Lazily slice *items* into consecutive batches.

        The input is consumed incrementally, so an unbounded iterable only
        ever has one batch materialised here at a time.
        """
        iterator = iter(items)
        for index in itertools.count():
            chunk = tuple(itertools.islice(iterator, self.batch_size))
            if not chunk:
                return
            yield Batch(index=index, items=chunk)

    def dispatch(
        self,
        items: Iterable[Document],
        tasks: BatchQueue[Batch],
        cancel: threading.Event | None = None,
    ) -> int:
        """Send every batch to *tasks*, then close it.

        Each ``put`` blocks until a worker has room, so memory use is bounded
        by the batches in flight rather than by the input size. The queue is
        closed even if iteration fails or the run is cancelled, so workers
        never wait forever.

        Returns
        -------
        int
            Number of batches sent.
        """
        sent = 0
        try:
            for batch in self.split(items):
                tasks.put(batch, cancel)
                sent += 1
                logger.debug("Dispatched batch %d (%d documents)", batch.index, len(batch))
        finally:
            tasks.close()
            logger.info("Dispatcher finished: %d batches sent", sent)
        return sent
