"""
Inflight concurrency gate.

A crude admission-control valve in front of an outbound dependency: callers
``try_enter()`` before starting work and ``leave()`` in a ``finally`` block.
Once ``limit`` callers are inside, further callers are turned away rather
than queued.
"""

import threading


class InflightGate:
    """Counter of in-progress deliveries with a hard ceiling."""

    def __init__(self, name: str, limit: int) -> None:
        self.name = name
        self.limit = limit
        self._inflight = 0
        self._lock = threading.Lock()

    @property
    def inflight(self) -> int:
        return self._inflight

    def try_enter(self) -> bool:
        """Take a slot. Returns False (without counting) when the gate is full."""
        with self._lock:
            if self._inflight >= self.limit:
                return False
            self._inflight += 1
            return True

    def leave(self) -> None:
        with self._lock:
            if self._inflight > 0:
                self._inflight -= 1

    def __repr__(self) -> str:
        return f"InflightGate(name={self.name!r}, inflight={self._inflight}, limit={self.limit})"
