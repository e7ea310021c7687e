"""RetryPolicy: exponential backoff for rate-limited transforms, via tenacity.

Only failures classified as :attr:`FailureKind.TRANSIENT` (the provider's
own "too many requests" rejection) are retried. Everything else aborts the
batch on the first attempt, because retrying it would spend rate budget on
a call that cannot succeed.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import TypeVar

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from batch_rag.batching.models import FailureKind
from batch_rag.errors import (
    ConfigurationError,
    FatalBatchError,
    PipelineCancelled,
    RetriesExhausted,
    TransientRateLimited,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

RATE_LIMITED_STATUS = 429


def _status_of(exc: BaseException) -> object:
    status = getattr(exc, "status_code", None)
    if status is None:
        response = getattr(exc, "response", None)
        status = getattr(response, "status_code", None)
    if status is None:
        status = getattr(exc, "code", None)
    return status


def classify_failure(exc: BaseException) -> FailureKind:
    """Decide whether *exc* is a rate-limit rejection worth retrying.

    :class:`TransientRateLimited` is always transient. Provider SDK errors
    are recognised by an HTTP status of 429 on the exception itself or on
    its ``response``; this covers ``openai.RateLimitError`` and
    ``httpx.HTTPStatusError`` without matching on message text.
    """
    if isinstance(exc, TransientRateLimited):
        return FailureKind.TRANSIENT
    status = _status_of(exc)
    try:
        if status is not None and int(status) == RATE_LIMITED_STATUS:
            return FailureKind.TRANSIENT
    except (TypeError, ValueError):
        pass
    return FailureKind.FATAL


def is_transient(exc: BaseException) -> bool:
    return classify_failure(exc) is FailureKind.TRANSIENT


def _cancellable_sleep(cancel: threading.Event | None) -> Callable[[float], None]:
    def sleep(seconds: float) -> None:
        if cancel is None:
            time.sleep(seconds)
        elif cancel.wait(seconds):
            raise PipelineCancelled("cancelled during retry backoff")

    return sleep


class RetryPolicy:
    """Retries rate-limited operations with doubling delays.

    ``max_retries`` counts *retries*, not attempts: ``max_retries=5`` allows
    one initial attempt plus up to five more, sleeping ``base_delay``,
    ``2 * base_delay``, ``4 * base_delay`` ... before each of them.

    Example::

        policy = RetryPolicy(max_retries=5, base_delay=2.0)
        chunks = policy.execute(lambda: transform(batch.items), cancel=cancel)

    Parameters
    ----------
    max_retries:
        Retries allowed after transient failures. ``0`` disables retrying.
    base_delay:
        Seconds to wait before the first retry.
    multiplier:
        Growth factor between consecutive delays.
    """

    def __init__(self, max_retries: int = 5, base_delay: float = 2.0, multiplier: float = 2.0) -> None:
        if max_retries < 0:
            raise ConfigurationError(f"max_retries must be non-negative, got {max_retries}")
        if base_delay < 0:
            raise ConfigurationError(f"base_delay must be non-negative, got {base_delay}")
        if multiplier < 1:
            raise ConfigurationError(f"multiplier must be >= 1, got {multiplier}")
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.multiplier = multiplier

    def delay_for(self, retry_number: int) -> float:
        """Backoff before the *retry_number*-th retry (1-based)."""
        return self.base_delay * self.multiplier ** (retry_number - 1)

    def execute(
        self,
        operation: Callable[[], T],
        *,
        cancel: threading.Event | None = None,
        batch_index: int | None = None,
        on_backoff: Callable[[int, float, BaseException], None] | None = None,
    ) -> T:
        """Run *operation* under the policy.

        Args:
            operation: Zero-argument callable; one call is one attempt.
            cancel: Aborts a pending backoff sleep with ``PipelineCancelled``.
            batch_index: Attached to raised errors and log lines.
            on_backoff: Called as ``(attempt, delay, error)`` before each sleep.

        Returns:
            Whatever the first successful attempt returned.

        Raises:
            FatalBatchError: The operation failed with a non-transient error.
            RetriesExhausted: Transient failures outlasted ``max_retries``.
            PipelineCancelled: Cancellation fired during an attempt or a sleep.
        """
        attempt = 0

        def before_sleep(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception() if retry_state.outcome else None
            delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
            logger.warning(
                "Batch %s rate limited, retrying in %.2fs (attempt %d/%d): %s",
                batch_index,
                delay,
                retry_state.attempt_number,
                self.max_retries + 1,
                error,
            )
            if on_backoff is not None and error is not None:
                on_backoff(retry_state.attempt_number, delay, error)

        retrying = Retrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=self.base_delay, exp_base=self.multiplier),
            retry=retry_if_exception(is_transient),
            sleep=_cancellable_sleep(cancel),
            before_sleep=before_sleep,
            reraise=False,
        )

        try:
            for attempt_state in retrying:
                with attempt_state:
                    attempt = attempt_state.retry_state.attempt_number
                    return operation()
        except RetryError as exc:
            last_error = exc.last_attempt.exception()
            raise RetriesExhausted(
                f"batch {batch_index} still rate limited after {self.max_retries} retries: {last_error}",
                batch_index=batch_index,
                attempts=attempt,
            ) from last_error
        except PipelineCancelled:
            raise
        except Exception as exc:
            raise FatalBatchError(
                f"non-retryable error on batch {batch_index}: {exc}",
                batch_index=batch_index,
                attempts=attempt,
            ) from exc

        # Retrying always returns or raises.
        raise RuntimeError("Unexpected state in retry loop")  # pragma: no cover
