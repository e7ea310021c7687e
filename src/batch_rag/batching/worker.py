"""Workers and the fixed-size pool that runs them.

Worker contract
---------------
* Pull batches from the task queue until it is closed and drained.
* Every transform *attempt*, retries included, first takes one permit from
  the shared :class:`RateLimiter`.
* Successful output goes to the result queue exactly once.
* A per-batch failure is logged, recorded and skipped; it never stops the
  worker or the pool.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import TYPE_CHECKING, Protocol

from batch_rag.batching.models import Batch, BatchFailure, FailureKind, WorkerReport
from batch_rag.errors import BatchError, ConfigurationError, RetriesExhausted

if TYPE_CHECKING:
    from langchain_core.documents import Document

    from batch_rag.batching.queues import BatchQueue
    from batch_rag.batching.rate_limit import RateLimiter
    from batch_rag.batching.retry import RetryPolicy

logger = logging.getLogger(__name__)


class BatchTransform(Protocol):
    """Turns one batch of documents into one batch of results.

    Raise :class:`~batch_rag.errors.TransientRateLimited` (or any error
    carrying HTTP status 429) when the backing service is rate limiting;
    any other exception is treated as fatal for the batch.
    """

    def __call__(self, items: list[Document]) -> list[Document]: ...


class Worker:
    """One consumer of the task queue and producer of the result queue."""

    def __init__(
        self,
        worker_id: int,
        transform: BatchTransform,
        limiter: RateLimiter,
        retry_policy: RetryPolicy,
        tasks: BatchQueue[Batch],
        results: BatchQueue[Batch],
        cancel: threading.Event | None = None,
    ) -> None:
        self.worker_id = worker_id
        self._transform = transform
        self._limiter = limiter
        self._retry_policy = retry_policy
        self._tasks = tasks
        self._results = results
        self._cancel = cancel
        self.report = WorkerReport(worker_id=worker_id)

    def run(self) -> WorkerReport:
        """Process batches until the task queue is exhausted.

        Raises
        ------
        PipelineCancelled
            When the run is cancelled; the report keeps what was done so far.
        """
        logger.info("Worker %d started", self.worker_id)
        for batch in self._tasks.consume(self._cancel):
            self._process(batch)
        logger.info(
            "Worker %d finished: %d batches processed, %d dropped",
            self.worker_id,
            self.report.processed,
            len(self.report.failures),
        )
        return self.report

    def _attempt(self, batch: Batch) -> list[Document]:
        self._limiter.acquire(self._cancel)
        self.report.attempts += 1
        return list(self._transform(list(batch.items)))

    def _process(self, batch: Batch) -> None:
        logger.debug("Worker %d processing batch %d (%d documents)", self.worker_id, batch.index, len(batch))
        try:
            output = self._retry_policy.execute(
                lambda: self._attempt(batch),
                cancel=self._cancel,
                batch_index=batch.index,
            )
        except BatchError as exc:
            kind = FailureKind.TRANSIENT if isinstance(exc, RetriesExhausted) else FailureKind.FATAL
            logger.error(
                "Worker %d dropped batch %d after %d attempt(s): %s",
                self.worker_id,
                batch.index,
                exc.attempts,
                exc,
                exc_info=exc.__cause__ is not None,
            )
            self.report.failures.append(
                BatchFailure(
                    batch_index=batch.index,
                    size=len(batch),
                    attempts=exc.attempts,
                    kind=kind,
                    error=str(exc),
                )
            )
            return

        self._results.put(Batch(index=batch.index, items=tuple(output)), self._cancel)
        self.report.processed += 1


class WorkerPool:
    """Runs a fixed number of :class:`Worker` loops on a thread pool.

    A watcher thread waits for every worker to exit and then closes the
    result queue, exactly once, whether the workers finished normally, were
    cancelled, or crashed.

    Parameters
    ----------
    workers:
        Number of concurrent workers; static for the pool's lifetime.
    transform, limiter, retry_policy:
        Shared by all workers.
    tasks, results:
        The task queue to drain and the result queue to fill.
    cancel:
        Cancellation signal for the run.
    """

    def __init__(
        self,
        workers: int,
        transform: BatchTransform,
        limiter: RateLimiter,
        retry_policy: RetryPolicy,
        tasks: BatchQueue[Batch],
        results: BatchQueue[Batch],
        cancel: threading.Event | None = None,
    ) -> None:
        if workers <= 0:
            raise ConfigurationError(f"workers must be positive, got {workers}")
        self.size = workers
        self._results = results
        self._cancel = cancel
        self._workers = [
            Worker(i, transform, limiter, retry_policy, tasks, results, cancel) for i in range(workers)
        ]
        self._executor: ThreadPoolExecutor | None = None
        self._futures: list[Future[WorkerReport]] = []
        self._watcher: threading.Thread | None = None

    def start(self) -> None:
        """Start every worker and the completion watcher."""
        if self._executor is not None:
            raise RuntimeError("worker pool already started")
        self._executor = ThreadPoolExecutor(max_workers=self.size, thread_name_prefix="batch-worker")
        self._futures = [self._executor.submit(worker.run) for worker in self._workers]
        self._watcher = threading.Thread(target=self._close_when_done, name="batch-pool-watcher", daemon=True)
        self._watcher.start()

    def _close_when_done(self) -> None:
        wait(self._futures)
        # A crashed worker leaves batches unconsumed; stop the producer too.
        if self._cancel is not None and any(f.exception() is not None for f in self._futures):
            self._cancel.set()
        self._results.close()
        logger.debug("All %d workers exited; result queue closed", self.size)

    def join(self) -> list[WorkerReport]:
        """Wait for every worker and the watcher to finish.

        Returns
        -------
        list[WorkerReport]
            One report per worker, in worker-id order.

        Raises
        ------
        Exception
            The first error a worker loop raised (e.g. ``PipelineCancelled``).
        """
        if self._executor is None or self._watcher is None:
            raise RuntimeError("worker pool was never started")
        wait(self._futures)
        self._watcher.join()
        self._executor.shutdown(wait=True)
        for future in self._futures:
            error = future.exception()
            if error is not None:
                raise error
        return [worker.report for worker in self._workers]

    @property
    def reports(self) -> list[WorkerReport]:
        """Reports as they stand, including those of cancelled workers."""
        return [worker.report for worker in self._workers]
