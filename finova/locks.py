"""
locks.py - Per-user mutual exclusion

Each public operation is a read-validate-mutate-write sequence against the
store. Outside a host that serializes calls, two threads borrowing for the
same user could both read the same available_balance and both succeed.
UserLocks hands out one lock per user id so sequences for the same user never
interleave, while different users proceed independently.
"""

from __future__ import annotations
from contextlib import contextmanager
import threading
from typing import Dict, Iterator


class UserLocks:
    """
    Lazily created lock per user id.

    Example:
        locks = UserLocks()
        with locks.hold("alice"):
            account = store.get("alice")
            ...
            store.put("alice", updated)
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    def _lock_for(self, user: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(user)
            if lock is None:
                lock = threading.Lock()
                self._locks[user] = lock
            return lock

    @contextmanager
    def hold(self, user: str) -> Iterator[None]:
        """Hold the user's lock for the duration of the block."""
        lock = self._lock_for(user)
        with lock:
            yield

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
