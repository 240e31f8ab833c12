"""
Per-identifier single-flight locks.

Every unit of work that mutates a chat session (inbound message, gateway
webhook promotion) runs under the lock for that customer identifier, so two
deliveries for the same user are applied one after the other instead of
overwriting each other. Locks are reference counted and dropped when idle.

Cross-process safety is provided separately by the session version column.
"""
import threading
from contextlib import contextmanager
from typing import Dict, Iterator


class KeyedLock:
    """Registry of threading locks keyed by string."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}
        self._users: Dict[str, int] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._users[key] = self._users.get(key, 0) + 1
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                self._users[key] -= 1
                if self._users[key] == 0:
                    del self._users[key]
                    del self._locks[key]

    def active_keys(self) -> int:
        with self._guard:
            return len(self._locks)


# Shared by the message processor and the payment webhook
identifier_locks = KeyedLock()
