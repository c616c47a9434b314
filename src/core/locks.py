import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import Dict, Hashable


class KeyedLock:
    """Registry of exclusive locks, one per key.

    Requests holding different keys proceed in parallel; requests on the same
    key are serialized. Locks are process-local.
    """

    def __init__(self, name: str):
        self.name = name
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, threading.Lock] = {}
        self._users: Dict[Hashable, int] = defaultdict(int)

    @contextmanager
    def hold(self, key: Hashable):
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            self._users[key] += 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._users[key] -= 1
                if self._users[key] == 0:
                    # Nobody waits on this key any more
                    del self._users[key]
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


seat_map_locks = KeyedLock("seat-map")
ticket_locks = KeyedLock("ticket")
user_locks = KeyedLock("user")
