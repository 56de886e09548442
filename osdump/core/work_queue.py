"""Bounded FIFO work queue connecting the producer and consumer threads.

The queue has an explicit open/closed state. A closed queue can still be
drained; once it is empty, ``get`` returns the ``END_OF_STREAM`` sentinel
instead of blocking. ``abort`` is the orchestrator's escape hatch for a
failed consumer: it wakes a producer blocked on a full queue.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Deque, Generic, Iterator, TypeVar, Union

from .errors import QueueAbortedError, QueueClosedError

T = TypeVar("T")

DEFAULT_CAPACITY = 100_000


class _EndOfStream:
    """Sentinel type returned by ``WorkQueue.get`` on a closed, empty queue."""

    def __repr__(self) -> str:
        return "END_OF_STREAM"


END_OF_STREAM = _EndOfStream()


class WorkQueue(Generic[T]):
    """Single-producer, single-consumer bounded queue with close semantics.

    Attributes:
        capacity: Maximum number of items held at once.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        """Initialize the queue.

        Args:
            capacity: Maximum number of queued items. Must be positive.

        Raises:
            ValueError: If capacity is not positive.
        """
        if capacity <= 0:
            raise ValueError("capacity must be > 0")

        self._capacity = capacity
        self._items: Deque[T] = deque()
        self._closed = False
        self._aborted = False

        self._mutex = threading.Lock()
        self._not_empty = threading.Condition(self._mutex)
        self._not_full = threading.Condition(self._mutex)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def closed(self) -> bool:
        with self._mutex:
            return self._closed

    @property
    def aborted(self) -> bool:
        with self._mutex:
            return self._aborted

    def __len__(self) -> int:
        with self._mutex:
            return len(self._items)

    def put(self, item: T) -> None:
        """Append an item, blocking while the queue is full.

        Raises:
            QueueClosedError: If the queue was already closed.
            QueueAbortedError: If the queue is aborted before or while waiting.
        """
        with self._not_full:
            if self._closed and not self._aborted:
                raise QueueClosedError("put() called on a closed WorkQueue")
            while len(self._items) >= self._capacity and not self._aborted:
                self._not_full.wait()
            if self._aborted:
                raise QueueAbortedError("Work queue aborted, consumer is gone")
            self._items.append(item)
            self._not_empty.notify()

    def get(self) -> Union[T, _EndOfStream]:
        """Remove and return the oldest item.

        Blocks while the queue is empty and still open.

        Returns:
            The next item, or ``END_OF_STREAM`` once the queue is closed
            and drained (or aborted).
        """
        with self._not_empty:
            while not self._items and not self._closed and not self._aborted:
                self._not_empty.wait()
            if self._aborted or not self._items:
                return END_OF_STREAM
            item = self._items.popleft()
            self._not_full.notify()
            return item

    def close(self) -> None:
        """Mark the queue closed. Idempotent; queued items stay drainable."""
        with self._mutex:
            self._closed = True
            self._not_empty.notify_all()

    def abort(self) -> None:
        """Discard pending items and wake every blocked caller."""
        with self._mutex:
            self._aborted = True
            self._closed = True
            self._items.clear()
            self._not_empty.notify_all()
            self._not_full.notify_all()

    def __iter__(self) -> Iterator[T]:
        """Yield items until the end of the stream."""
        while True:
            item = self.get()
            if item is END_OF_STREAM:
                return
            yield item

    def __repr__(self) -> str:
        return (
            f"WorkQueue(capacity={self._capacity}, size={len(self)}, "
            f"closed={self.closed})"
        )
