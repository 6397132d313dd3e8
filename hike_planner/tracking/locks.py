"""Per-hike mutual exclusion for position updates, strategy reads and ends.

Serializes work on one hike within a single process. Processes sharing a
database file are not coordinated here.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class HikeLocks:
    """Hands out one lock per hike id; different hikes never contend.

    An entry lives only while some thread holds or waits for it, so ids of
    unknown or finished hikes leave nothing behind.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, tuple[threading.Lock, list[int]]] = {}

    @contextmanager
    def hold(self, hike_id: str) -> Iterator[None]:
        with self._guard:
            lock, users = self._locks.setdefault(hike_id, (threading.Lock(), [0]))
            users[0] += 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                users[0] -= 1
                if users[0] == 0:
                    del self._locks[hike_id]

    def __len__(self) -> int:
        return len(self._locks)
