"""Per-tournament mutual exclusion for bracket mutations.

Result recording and scoring of one tournament are serialized so two sibling
results cannot race on the same parent match. Generation and clearing lock the
category. Court dispatch spans tournaments and takes the shared "courts" lock.
"""
import threading
from contextlib import contextmanager
from typing import Dict, Generator, Hashable

COURTS_LOCK_KEY = "courts"


class TournamentLockRegistry:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, threading.RLock] = {}

    def lock_for(self, key: Hashable) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: Hashable) -> Generator[None, None, None]:
        lock = self.lock_for(key)
        lock.acquire()
        try:
            yield
        finally:
            lock.release()


registry = TournamentLockRegistry()


def tournament_lock(tournament_id: int):
    return registry.hold(("tournament", tournament_id))


def category_lock(category: str):
    return registry.hold(("category", str(category)))


def courts_lock():
    return registry.hold(COURTS_LOCK_KEY)
