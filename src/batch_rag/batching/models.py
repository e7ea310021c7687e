"""Value objects that flow through the batching pipeline.

Plain dataclasses, like the rest of the core: they are created and read by
worker threads and never validated from untrusted input.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from batch_rag.errors import ConfigurationError

if TYPE_CHECKING:
    from langchain_core.documents import Document

    from batch_rag.config import Settings


class FailureKind(str, enum.Enum):
    """How a failed transform attempt is treated by the retry policy."""

    TRANSIENT = "transient"
    FATAL = "fatal"


@dataclass(frozen=True)
class Batch:
    """An ordered slice of the input, consumed by exactly one worker.

    Attributes
    ----------
    index:
        Dispatch sequence number (0-based).
    items:
        The documents in original input order.
    """

    index: int
    items: tuple[Document, ...]

    def __len__(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class BatchFailure:
    """Record of a batch that was dropped after a per-batch error."""

    batch_index: int
    size: int
    attempts: int
    kind: FailureKind
    error: str


@dataclass
class WorkerReport:
    """What a single worker did during one run."""

    worker_id: int
    processed: int = 0
    attempts: int = 0
    failures: list[BatchFailure] = field(default_factory=list)


@dataclass(frozen=True)
class PipelineConfig:
    """Static knobs for one pipeline run.

    Attributes
    ----------
    workers:
        Number of concurrent workers.
    batch_size:
        Maximum documents per batch.
    max_retries:
        Retries allowed after rate-limit rejections (0 = single attempt).
    rate_interval:
        Seconds per refill window of the shared limiter.
    rate_burst:
        Permits granted per refill window.
    backoff_base:
        First retry delay in seconds; doubles after every retry.
    preserve_order:
        Reassemble results in dispatch order instead of arrival order.
    """

    workers: int = 3
    batch_size: int = 10
    max_retries: int = 5
    rate_interval: float = 2.0
    rate_burst: int = 1
    backoff_base: float = 2.0
    preserve_order: bool = False

    def validate(self) -> None:
        """Raise :class:`ConfigurationError` for any out-of-range value."""
        if self.workers <= 0:
            raise ConfigurationError(f"workers must be positive, got {self.workers}")
        if self.batch_size <= 0:
            raise ConfigurationError(f"batch_size must be positive, got {self.batch_size}")
        if self.max_retries < 0:
            raise ConfigurationError(f"max_retries must be non-negative, got {self.max_retries}")
        if self.rate_interval <= 0:
            raise ConfigurationError(f"rate_interval must be positive, got {self.rate_interval}")
        if self.rate_burst <= 0:
            raise ConfigurationError(f"rate_burst must be positive, got {self.rate_burst}")
        if self.backoff_base < 0:
            raise ConfigurationError(f"backoff_base must be non-negative, got {self.backoff_base}")

    @classmethod
    def from_settings(cls, settings: Settings) -> PipelineConfig:
        return cls(
            workers=settings.workers,
            batch_size=settings.batch_size,
            max_retries=settings.max_retries,
            rate_interval=settings.rate_interval_seconds,
            rate_burst=settings.rate_burst,
            backoff_base=settings.backoff_base_seconds,
            preserve_order=settings.preserve_order,
        )


@dataclass
class PipelineResult:
    """Outcome of one pipeline run.

    A run with some dropped batches is still a result; callers decide
    whether an empty ``items`` list is an error.
    """

    items: list[Document]
    batches_dispatched: int
    batches_succeeded: int
    attempts: int
    failures: list[BatchFailure] = field(default_factory=list)

    @property
    def dropped(self) -> int:
        """Number of batches that never reached the result queue."""
        return len(self.failures)
