"""
In-process serialization of writes per (user, program).

Part of STR-104: Program position advancement

Advance and progression application for one user and program must not
interleave inside a worker. Cross-process safety comes from the optimistic
``updated_at`` check in the position store and the lift max unique
constraint.
"""
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Tuple


class KeyedLocks:
    """A registry of re-entrant locks keyed by (user_id, program_id)."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Tuple[str, str], threading.RLock] = {}

    def _lock_for(self, key: Tuple[str, str]) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, user_id: str, program_id: str) -> Iterator[None]:
        lock = self._lock_for((user_id, program_id))
        with lock:
            yield


# Shared by every service instance in the process
position_locks = KeyedLocks()
