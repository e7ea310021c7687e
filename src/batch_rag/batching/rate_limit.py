"""Shared rate limiter wrapping pyrate-limiter.

One instance gates every worker of a pipeline run, so the aggregate rate of
external calls is bounded no matter how many workers are configured.
"""

from __future__ import annotations

import logging
import re
import threading
import time
from typing import TYPE_CHECKING

from pyrate_limiter import BucketFullException, InMemoryBucket, Limiter, Rate

from batch_rag.errors import ConfigurationError, PipelineCancelled

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)

_VALID_NAME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9_]*$")

_original_excepthook = threading.excepthook

# Leaker threads registered by RateLimiter.close(); keyed by ident, not name.
_suppressed_thread_idents: set[int] = set()
_suppressed_lock = threading.Lock()


def _custom_excepthook(args: threading.ExceptHookArgs) -> None:
    """Swallow the AssertionError pyrate-limiter's Leaker thread can raise on dispose.

    Only threads registered by :meth:`RateLimiter.close` are affected, and
    only for ``AssertionError``; everything else goes to the previous hook.
    """
    thread_ident = args.thread.ident if args.thread else None
    with _suppressed_lock:
        if thread_ident is not None and thread_ident in _suppressed_thread_idents and args.exc_type is AssertionError:
            _suppressed_thread_idents.discard(thread_ident)
            logger.debug(
                "Suppressed pyrate-limiter cleanup exception in thread %s",
                args.thread.name if args.thread else thread_ident,
            )
            return
    _original_excepthook(args)


threading.excepthook = _custom_excepthook


class RateLimiter:
    """Sliding-window gate: at most *burst* permits per *interval_seconds*.

    Example::

        limiter = RateLimiter(interval_seconds=2.0, burst=1)

        limiter.acquire(cancel)  # blocks until a permit is free
        call_embedding_api()

    Parameters
    ----------
    interval_seconds:
        Length of the refill window.
    burst:
        Permits available inside one window.
    name:
        Bucket key. Must start with a letter and contain only alphanumeric
        characters and underscores.
    poll_interval:
        Upper bound on how long a waiting caller sleeps between attempts.
        Defaults to a tenth of the window, capped at 50 ms.

    Raises
    ------
    ConfigurationError
        If the window or burst is not positive or the name is invalid.
    """

    def __init__(
        self,
        interval_seconds: float,
        burst: int = 1,
        *,
        name: str = "batch_transform",
        poll_interval: float | None = None,
    ) -> None:
        if not _VALID_NAME_PATTERN.match(name):
            raise ConfigurationError(
                f"Invalid rate limiter name: {name!r}. Name must start with a letter "
                "and contain only alphanumeric characters and underscores."
            )
        if interval_seconds <= 0:
            raise ConfigurationError(f"interval_seconds must be positive, got {interval_seconds}")
        if burst <= 0:
            raise ConfigurationError(f"burst must be positive, got {burst}")

        self.name = name
        self.interval_seconds = interval_seconds
        self.burst = burst
        self._poll_interval = poll_interval or min(interval_seconds / 10, 0.05)
        self._lock = threading.Lock()
        self._granted = 0
        self._closed = False

        interval_ms = max(1, round(interval_seconds * 1000))
        self._bucket = InMemoryBucket([Rate(burst, interval_ms)])
        self._limiter = Limiter(self._bucket, raise_when_fail=True, max_delay=None)

    @property
    def permits_granted(self) -> int:
        """Total permits handed out since construction."""
        with self._lock:
            return self._granted

    def try_acquire(self) -> bool:
        """Take one permit if available, without blocking."""
        with self._lock:
            try:
                acquired = self._limiter.try_acquire(self.name)
            except BucketFullException:
                return False
            # pyrate-limiter returns False instead of raising on some code paths.
            if acquired is False:
                return False
            self._granted += 1
            return True

    def acquire(self, cancel: threading.Event | None = None) -> None:
        """Block until one permit is granted.

        Raises
        ------
        PipelineCancelled
            If *cancel* is set before or while waiting.
        """
        while True:
            if cancel is not None and cancel.is_set():
                raise PipelineCancelled(f"cancelled while waiting for rate limiter {self.name!r}")
            if self.try_acquire():
                return
            if cancel is None:
                time.sleep(self._poll_interval)
            elif cancel.wait(self._poll_interval):
                raise PipelineCancelled(f"cancelled while waiting for rate limiter {self.name!r}")

    def close(self) -> None:
        """Release the bucket and its background leak thread. Safe to call twice."""
        if self._closed:
            return
        self._closed = True

        leaker = getattr(self._limiter.bucket_factory, "_leaker", None)
        if leaker is not None and leaker.is_alive() and leaker.ident is not None:
            with _suppressed_lock:
                _suppressed_thread_idents.add(leaker.ident)
        else:
            leaker = None

        self._limiter.dispose(self._bucket)
        if leaker is not None:
            leaker.join(timeout=0.05)
        logger.debug("Rate limiter %r closed after %d permits", self.name, self._granted)

    def __enter__(self) -> RateLimiter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
