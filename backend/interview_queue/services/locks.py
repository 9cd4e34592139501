"""Per-key exclusion used to shard scheduling state.

Locks are created on first use and never discarded, so two threads asking
for the same key always share one lock. Multi-key acquisition sorts the
keys first; with every caller using the same order no cycle can form.
"""

from __future__ import annotations

import threading
from contextlib import ExitStack, contextmanager
from typing import Dict, Iterator


class KeyedLocks:
    """A lazily populated family of re-entrant locks."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._locks: Dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def get(self, key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, *keys: str) -> Iterator[None]:
        """Hold the locks for ``keys`` in ascending key order."""
        with ExitStack() as stack:
            for key in sorted(set(keys)):
                stack.enter_context(self.get(key))
            yield

