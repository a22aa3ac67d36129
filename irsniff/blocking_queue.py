"""A thread-safe FIFO queue that serves blocked callers in arrival order."""

from __future__ import annotations

import threading
from collections import deque
from typing import Any


class QueueFull(Exception):
    """Raised by :meth:`BlockingQueue.add` when there is no room."""


class QueueEmpty(Exception):
    """Raised by :meth:`BlockingQueue.poll` when nothing is available."""


class QueueClosed(Exception):
    """Raised by every operation once the queue has been closed."""


class BlockingQueue:
    """Fixed-capacity (or boundless) queue with blocking and non-blocking calls.

    A capacity of zero or less makes the queue boundless: adding never blocks.
    Callers blocked in :meth:`put` or :meth:`take` are served in FIFO order,
    and the non-blocking calls never overtake a caller that is already waiting.
    """

    def __init__(self, capacity: int = 0) -> None:
        self._boundless = capacity <= 0
        self._capacity = capacity if capacity > 0 else None
        self._items: deque[Any] = deque()
        self._cond = threading.Condition()
        self._closed = False
        self._active = 0
        self._put_next = 0
        self._put_serving = 0
        self._take_next = 0
        self._take_serving = 0

    @property
    def capacity(self) -> int | None:
        """The fixed capacity, or ``None`` for a boundless queue."""
        return self._capacity

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)

    def __enter__(self) -> BlockingQueue:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _full(self) -> bool:
        return not self._boundless and len(self._items) >= self._capacity

    def _leave(self) -> None:
        self._active -= 1
        self._cond.notify_all()

    def add(self, element: Any) -> None:
        """Append ``element`` without blocking; raise :class:`QueueFull` if no room."""
        with self._cond:
            if self._closed:
                raise QueueClosed
            if self._put_next != self._put_serving or self._full():
                raise QueueFull
            self._items.append(element)
            self._cond.notify_all()

    def put(self, element: Any) -> None:
        """Append ``element``, waiting in turn for room if the queue is full."""
        with self._cond:
            if self._closed:
                raise QueueClosed
            self._active += 1
            try:
                ticket = self._put_next
                self._put_next += 1
                while not self._closed and (ticket != self._put_serving or self._full()):
                    self._cond.wait()
                if self._closed:
                    raise QueueClosed
                self._items.append(element)
                self._put_serving += 1
            finally:
                self._leave()

    def poll(self) -> Any:
        """Remove and return the oldest element; raise :class:`QueueEmpty` if none."""
        with self._cond:
            if self._closed:
                raise QueueClosed
            if self._take_next != self._take_serving or not self._items:
                raise QueueEmpty
            element = self._items.popleft()
            self._cond.notify_all()
            return element

    def take(self) -> Any:
        """Remove and return the oldest element, waiting in turn for one to arrive."""
        with self._cond:
            if self._closed:
                raise QueueClosed
            self._active += 1
            try:
                ticket = self._take_next
                self._take_next += 1
                while not self._closed and (ticket != self._take_serving or not self._items):
                    self._cond.wait()
                if self._closed:
                    raise QueueClosed
                element = self._items.popleft()
                self._take_serving += 1
                return element
            finally:
                self._leave()

    def close(self) -> None:
        """Close the queue, wake all blocked callers and wait for them to return.

        Closing is permanent and may be repeated safely.
        """
        with self._cond:
            if self._closed:
                return
            self._closed = True
            self._cond.notify_all()
            while self._active:
                self._cond.wait()