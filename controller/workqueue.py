"""Thread-safe work queue with per-key serialization.

Semantics follow the controller-runtime queue the reconciler is written
against:

- a key queued several times before a worker picks it up is processed once
- a key is never handed to two workers at the same time; re-adds while it is
  processing are deferred until ``done`` is called
- ``add_after`` schedules a key for later (resync); a key has at most one
  pending deadline, the earliest requested
- ``add_rate_limited`` schedules with per-key exponential backoff, reset by
  ``forget``
"""

import heapq
import itertools
import threading
import time
from typing import Hashable, Optional


class ShutDown(Exception):
    """Raised by ``get`` once the queue has been shut down."""


class WorkQueue:
    """De-duplicating delaying queue."""
    
    def __init__(self, base_delay: float = 1.0, max_delay: float = 300.0):
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._cond = threading.Condition()
        self._queue: list[Hashable] = []
        self._dirty: set[Hashable] = set()
        self._processing: set[Hashable] = set()
        self._waiting: list[tuple[float, int, Hashable]] = []
        self._deadlines: dict[Hashable, float] = {}
        self._seq = itertools.count()
        self._failures: dict[Hashable, int] = {}
        self._shutting_down = False
    
    def __len__(self) -> int:
        with self._cond:
            return len(self._queue)
    
    def add(self, key: Hashable) -> None:
        with self._cond:
            self._add_locked(key)
    
    def _add_locked(self, key: Hashable) -> None:
        if self._shutting_down or key in self._dirty:
            return
        self._dirty.add(key)
        if key in self._processing:
            return
        self._queue.append(key)
        self._cond.notify()
    
    def add_after(self, key: Hashable, delay: float) -> None:
        """Queue ``key`` after ``delay`` seconds unless it is already due sooner."""
        if delay <= 0:
            self.add(key)
            return
        with self._cond:
            if self._shutting_down:
                return
            deadline = time.monotonic() + delay
            # One pending deadline per key; the earliest wins
            current = self._deadlines.get(key)
            if current is not None and current <= deadline:
                return
            self._deadlines[key] = deadline
            heapq.heappush(self._waiting, (deadline, next(self._seq), key))
            self._cond.notify()
    
    def add_rate_limited(self, key: Hashable) -> float:
        """Requeue after a backoff that doubles with each consecutive failure."""
        with self._cond:
            failures = self._failures.get(key, 0)
            self._failures[key] = failures + 1
        delay = min(self.base_delay * (2 ** failures), self.max_delay)
        self.add_after(key, delay)
        return delay
    
    def forget(self, key: Hashable) -> None:
        with self._cond:
            self._failures.pop(key, None)
    
    def num_requeues(self, key: Hashable) -> int:
        with self._cond:
            return self._failures.get(key, 0)
    
    def time_until(self, key: Hashable) -> Optional[float]:
        """Seconds until ``key`` is due from ``add_after``, or None if not scheduled."""
        with self._cond:
            deadline = self._deadlines.get(key)
        if deadline is None:
            return None
        return max(deadline - time.monotonic(), 0.0)
    
    def num_scheduled(self) -> int:
        """Number of keys waiting on an ``add_after`` deadline."""
        with self._cond:
            return len(self._deadlines)
    
    def _promote_due_locked(self) -> Optional[float]:
        """Move due delayed keys into the queue; return seconds to the next one."""
        now = time.monotonic()
        while self._waiting and self._waiting[0][0] <= now:
            deadline, _, key = heapq.heappop(self._waiting)
            if self._deadlines.get(key) != deadline:
                continue  # superseded by an earlier deadline
            del self._deadlines[key]
            self._add_locked(key)
        if self._waiting:
            return self._waiting[0][0] - now
        return None
    
    def get(self, timeout: Optional[float] = None) -> Optional[Hashable]:
        """
        Block until a key is available and mark it as processing.
        
        Returns:
            The key, or None if ``timeout`` expired
        
        Raises:
            ShutDown: If the queue was shut down
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while True:
                if self._shutting_down:
                    raise ShutDown()
                next_due = self._promote_due_locked()
                if self._queue:
                    key = self._queue.pop(0)
                    self._dirty.discard(key)
                    self._processing.add(key)
                    return key
                
                wait_for = next_due
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        return None
                    wait_for = remaining if wait_for is None else min(wait_for, remaining)
                self._cond.wait(wait_for)
    
    def done(self, key: Hashable) -> None:
        """Mark ``key`` as processed; re-queue it if it was added meanwhile."""
        with self._cond:
            self._processing.discard(key)
            if key in self._dirty:
                self._queue.append(key)
                self._cond.notify()
    
    def shut_down(self) -> None:
        with self._cond:
            self._shutting_down = True
            self._cond.notify_all()
    
    @property
    def shutting_down(self) -> bool:
        with self._cond:
            return self._shutting_down
