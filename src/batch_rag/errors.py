"""Exception hierarchy shared by the batching core and the RAG layers.

Per-batch errors (:class:`BatchError` and subclasses) stay inside the worker
that hit them; only configuration errors, cancellation and
:class:`PipelineLevelError` reach the caller of an upload or query.
"""

from __future__ import annotations


class BatchRagError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(BatchRagError, ValueError):
    """Invalid worker count, batch size, retry budget or limiter parameters."""


class TransientRateLimited(BatchRagError):
    """The external dependency rejected a call because its rate limit was hit.

    Parameters
    ----------
    message:
        Human-readable description from the provider.
    retry_after:
        Seconds the provider asked us to wait, when it said so.
    """

    status_code = 429

    def __init__(self, message: str = "rate limit exceeded", *, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class BatchError(BatchRagError):
    """A single batch could not be transformed; the batch is dropped."""

    def __init__(self, message: str, *, batch_index: int | None = None, attempts: int = 0) -> None:
        super().__init__(message)
        self.batch_index = batch_index
        self.attempts = attempts


class FatalBatchError(BatchError):
    """Non-retryable failure (bad credentials, malformed content, ...)."""


class RetriesExhausted(BatchError):
    """Rate-limit rejections persisted past the retry budget."""


class PipelineLevelError(BatchRagError):
    """The whole upload or query produced nothing useful."""


class PipelineCancelled(BatchRagError):
    """The run's cancellation signal fired while work was still pending."""


class QueueClosed(BatchRagError):
    """A consumer read from a queue that is closed and drained."""


class StoreError(BatchRagError):
    """The vector store rejected a write or a search."""


class GenerationError(BatchRagError):
    """The chat model call failed."""
