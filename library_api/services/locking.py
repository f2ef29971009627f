"""Per-entity locks that serialize check-and-write sequences.

Borrow and return touch a book row and a member row in one unit of work.
Holding the locks for both keys (always acquired in sorted order) makes two
units that share either entity run one after the other inside this process;
``SELECT ... FOR UPDATE`` extends that to other processes on databases that
support row locks.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from library_api.core.errors import LockTimeout

logger = logging.getLogger(__name__)


def book_key(book_id: str) -> str:
    return f"book:{book_id}"


def member_key(member_id: str) -> str:
    return f"member:{member_id}"


class EntityLocks:
    """A registry of named locks that live only while someone holds or awaits them."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._holders: dict[str, int] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _checkout(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            self._holders[key] = self._holders.get(key, 0) + 1
            return lock

    def _checkin(self, key: str) -> None:
        with self._guard:
            remaining = self._holders[key] - 1
            if remaining:
                self._holders[key] = remaining
            else:
                del self._holders[key]
                del self._locks[key]

    @contextmanager
    def hold(self, *keys: str, timeout: float) -> Iterator[None]:
        checked_out: list[str] = []
        acquired: list[threading.Lock] = []
        try:
            for key in sorted(set(keys)):
                lock = self._checkout(key)
                checked_out.append(key)
                logger.debug("Waiting for lock %s", key)
                if not lock.acquire(timeout=timeout):
                    raise LockTimeout(f"Timed out waiting for {key}.")
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for key in reversed(checked_out):
                self._checkin(key)


entity_locks = EntityLocks()
