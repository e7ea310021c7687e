"""BatchPipeline — wires dispatcher, worker pool and aggregator for one run.

Usage::

    from batch_rag.batching import BatchPipeline, PipelineConfig

    pipeline = BatchPipeline(transform, PipelineConfig(workers=3, batch_size=10))
    result = pipeline.run(documents)
    print(len(result.items), result.dropped)

Thread layout of a run::

    caller thread       ── ResultAggregator.drain ──────────────┐
    batch-dispatcher    ── TaskDispatcher.dispatch → task queue │
    batch-worker-0..N-1 ── Worker.run: task queue → result queue┤
    batch-pool-watcher  ── closes result queue after workers ───┘

``run`` returns only after every one of those threads has finished.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

from batch_rag.batching.aggregator import ResultAggregator
from batch_rag.batching.dispatcher import TaskDispatcher
from batch_rag.batching.models import Batch, PipelineConfig, PipelineResult
from batch_rag.batching.queues import BatchQueue
from batch_rag.batching.rate_limit import RateLimiter
from batch_rag.batching.retry import RetryPolicy
from batch_rag.batching.worker import BatchTransform, WorkerPool
from batch_rag.errors import PipelineCancelled

if TYPE_CHECKING:
    from langchain_core.documents import Document

logger = logging.getLogger(__name__)


class BatchPipeline:
    """Concurrent, rate-limited batch processor.

    Parameters
    ----------
    transform:
        The :class:`~batch_rag.batching.worker.BatchTransform` each worker
        calls.
    config:
        Static run configuration; validated here, before anything starts.
    limiter:
        Shared limiter to use instead of building one from *config*. A
        limiter passed in is left open; one built here is closed after
        every run.
    """

    def __init__(
        self,
        transform: BatchTransform,
        config: PipelineConfig | None = None,
        *,
        limiter: RateLimiter | None = None,
    ) -> None:
        self.config = config or PipelineConfig()
        self.config.validate()
        self.transform = transform
        self._limiter = limiter
        self._dispatcher = TaskDispatcher(self.config.batch_size)
        self._retry_policy = RetryPolicy(
            max_retries=self.config.max_retries,
            base_delay=self.config.backoff_base,
        )

    def run(self, items: Iterable[Document], cancel: threading.Event | None = None) -> PipelineResult:
        """Push *items* through the pipeline and collect every successful batch.

        Parameters
        ----------
        items:
            Input documents; any iterable, consumed lazily.
        cancel:
            Setting this event aborts pending queue waits, limiter waits and
            backoff sleeps promptly.

        Returns
        -------
        PipelineResult
            Aggregated items plus per-batch failure records. Dropped batches
            do not make the run fail.

        Raises
        ------
        PipelineCancelled
            If *cancel* fired before the run completed.
        """
        cancel = cancel if cancel is not None else threading.Event()
        owns_limiter = self._limiter is None
        limiter = self._limiter or RateLimiter(self.config.rate_interval, self.config.rate_burst)

        tasks: BatchQueue[Batch] = BatchQueue(maxsize=1, name="task queue")
        results: BatchQueue[Batch] = BatchQueue(maxsize=1, name="result queue")
        pool = WorkerPool(
            self.config.workers,
            self.transform,
            limiter,
            self._retry_policy,
            tasks,
            results,
            cancel,
        )
        aggregator = ResultAggregator(preserve_order=self.config.preserve_order)

        try:
            with ThreadPoolExecutor(max_workers=1, thread_name_prefix="batch-dispatcher") as executor:
                dispatched = executor.submit(self._dispatcher.dispatch, items, tasks, cancel)
                try:
                    pool.start()
                    collected = aggregator.drain(results)
                    dispatch_error = dispatched.exception()
                    reports = pool.join()
                except PipelineCancelled as exc:
                    raise PipelineCancelled(
                        f"pipeline cancelled after {aggregator.batches_received} batches completed"
                    ) from exc
                except BaseException:
                    # Unblock the dispatcher and workers before the executor waits on them.
                    cancel.set()
                    raise
        finally:
            if owns_limiter:
                limiter.close()

        if dispatch_error is not None:
            raise dispatch_error

        failures = sorted(
            (failure for report in reports for failure in report.failures),
            key=lambda f: f.batch_index,
        )
        result = PipelineResult(
            items=collected,
            batches_dispatched=dispatched.result(),
            batches_succeeded=aggregator.batches_received,
            attempts=sum(report.attempts for report in reports),
            failures=failures,
        )
        logger.info(
            "Pipeline finished: %d batches dispatched, %d succeeded, %d dropped, %d attempts, %d items",
            result.batches_dispatched,
            result.batches_succeeded,
            result.dropped,
            result.attempts,
            len(result.items),
        )
        return result
