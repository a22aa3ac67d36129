"""A reusable thread barrier that can be shut down."""

from __future__ import annotations

import threading


class BarrierShutdown(Exception):
    """Raised by :meth:`Barrier.wait` once the barrier has been shut down."""


class Barrier:
    """Blocks callers until ``count`` of them have arrived."""

    def __init__(self, count: int) -> None:
        if count <= 0:
            raise ValueError("barrier count must be positive")
        self._trip_count = count
        self._count = 0
        self._generation = 0
        self._running = True
        self._cond = threading.Condition()

    @property
    def running(self) -> bool:
        return self._running

    def wait(self) -> bool:
        """Wait for the others; return True for the caller that tripped the barrier."""
        with self._cond:
            if not self._running:
                raise BarrierShutdown
            self._count += 1
            if self._count >= self._trip_count:
                self._count = 0
                self._generation += 1
                self._cond.notify_all()
                return True
            generation = self._generation
            while generation == self._generation and self._running:
                self._cond.wait()
            if not self._running:
                raise BarrierShutdown
            return False

    def shutdown(self) -> None:
        """Wake every waiter; they and later callers get :class:`BarrierShutdown`."""
        with self._cond:
            self._running = False
            self._cond.notify_all()