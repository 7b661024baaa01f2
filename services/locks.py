"""
Process-local per-key serialization.

Used to serialize the read-capture-then-write sequence of multi-step
mutations on the same user or expense. Locks are created on demand and
dropped once nobody holds or waits for them.
"""
import threading
from contextlib import contextmanager


class KeyedLocks:
    """A registry of mutexes keyed by an arbitrary hashable key."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}
        self._waiters = {}

    @contextmanager
    def hold(self, key):
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._waiters[key] -= 1
                if not self._waiters[key]:
                    del self._waiters[key]
                    del self._locks[key]

    def __len__(self):
        with self._guard:
            return len(self._locks)
