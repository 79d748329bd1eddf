"""Per-item exclusive locks.

Serializes transitions of one item inside this process only. Writers in other
processes are held off by ``SELECT ... FOR UPDATE`` where the database has row
locks, and caught by the item's version check where it does not (SQLite).
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class EntityLocks:
    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._holders: dict[str, int] = {}

    @contextmanager
    def hold(self, identity: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(identity, threading.Lock())
            self._holders[identity] = self._holders.get(identity, 0) + 1

        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._holders[identity] -= 1
                if not self._holders[identity]:
                    del self._holders[identity]
                    del self._locks[identity]

    def is_held(self, identity: str) -> bool:
        with self._guard:
            lock = self._locks.get(identity)
            return lock is not None and lock.locked()
