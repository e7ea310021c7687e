"""Closable, cancellable FIFO channel between pipeline stages."""

from __future__ import annotations

import queue
import threading
from collections.abc import Iterator
from typing import Generic, TypeVar

from batch_rag.errors import PipelineCancelled, QueueClosed

T = TypeVar("T")

# How often a blocked put/get re-checks the close flag and the cancel signal.
POLL_INTERVAL = 0.05


class BatchQueue(Generic[T]):
    """Bounded FIFO that can be closed once by its producer side.

    ``queue.Queue`` has no notion of "no more items", so the closed state is
    tracked with an event: a consumer that finds the queue empty *and* closed
    gets :class:`QueueClosed`. Blocking calls wake up every
    :data:`POLL_INTERVAL` seconds to observe closing and cancellation.

    Parameters
    ----------
    maxsize:
        Capacity. The default of 1 makes ``put`` wait until a consumer has
        taken the previous item, which bounds in-flight work.
    name:
        Used in log and error messages only.
    """

    def __init__(self, maxsize: int = 1, *, name: str = "queue") -> None:
        self.name = name
        self._queue: queue.Queue[T] = queue.Queue(maxsize=maxsize)
        self._closed = threading.Event()
        self._close_lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def put(self, item: T, cancel: threading.Event | None = None) -> None:
        """Enqueue *item*, blocking while the queue is full.

        Raises
        ------
        RuntimeError
            If the queue was already closed.
        PipelineCancelled
            If *cancel* fires before there is room.
        """
        while True:
            if self._closed.is_set():
                raise RuntimeError(f"put on closed {self.name}")
            if cancel is not None and cancel.is_set():
                raise PipelineCancelled(f"cancelled while sending to {self.name}")
            try:
                self._queue.put(item, timeout=POLL_INTERVAL)
                return
            except queue.Full:
                continue

    def get(self, cancel: threading.Event | None = None) -> T:
        """Dequeue the next item, blocking while the queue is empty.

        Items enqueued before :meth:`close` are always delivered.

        Raises
        ------
        QueueClosed
            When the queue is closed and drained.
        PipelineCancelled
            If *cancel* fires while waiting.
        """
        while True:
            try:
                return self._queue.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                pass
            # Producers close only after their last put, so closed + empty
            # means nothing else is coming.
            if self._closed.is_set() and self._queue.empty():
                raise QueueClosed(f"{self.name} is closed")
            if cancel is not None and cancel.is_set():
                raise PipelineCancelled(f"cancelled while waiting on {self.name}")

    def consume(self, cancel: threading.Event | None = None) -> Iterator[T]:
        """Yield items until the queue is closed and drained."""
        while True:
            try:
                yield self.get(cancel)
            except QueueClosed:
                return

    def close(self) -> None:
        """Signal that no more items will be put.

        Raises
        ------
        RuntimeError
            On a second call; each queue is closed exactly once.
        """
        with self._close_lock:
            if self._closed.is_set():
                raise RuntimeError(f"{self.name} closed twice")
            self._closed.set()
