"""
Batching — the concurrent, rate-limited batch-processing core.

Input documents are sliced into batches by a :class:`TaskDispatcher`, handed
over a bounded task queue to a fixed :class:`WorkerPool`, transformed under a
shared :class:`RateLimiter` and a :class:`RetryPolicy`, and gathered by a
:class:`ResultAggregator`. :class:`BatchPipeline` runs all of it.

Public surface
--------------
- :class:`BatchPipeline`, :class:`PipelineConfig`, :class:`PipelineResult`
- :class:`BatchTransform` — the protocol a transform must satisfy.
- :class:`RateLimiter`, :class:`RetryPolicy`, :func:`classify_failure`
- :class:`Batch`, :class:`BatchFailure`, :class:`FailureKind`
"""

from batch_rag.batching.aggregator import ResultAggregator
from batch_rag.batching.dispatcher import TaskDispatcher
from batch_rag.batching.models import (
    Batch,
    BatchFailure,
    FailureKind,
    PipelineConfig,
    PipelineResult,
    WorkerReport,
)
from batch_rag.batching.pipeline import BatchPipeline
from batch_rag.batching.queues import BatchQueue
from batch_rag.batching.rate_limit import RateLimiter
from batch_rag.batching.retry import RetryPolicy, classify_failure
from batch_rag.batching.worker import BatchTransform, Worker, WorkerPool

__all__ = [
    "Batch",
    "BatchFailure",
    "BatchPipeline",
    "BatchQueue",
    "BatchTransform",
    "FailureKind",
    "PipelineConfig",
    "PipelineResult",
    "RateLimiter",
    "ResultAggregator",
    "RetryPolicy",
    "TaskDispatcher",
    "Worker",
    "WorkerPool",
    "WorkerReport",
    "classify_failure",
]
