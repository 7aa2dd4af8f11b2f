import threading
from collections.abc import Hashable, Iterator
from contextlib import contextmanager


class KeyedLock:
    """
    One mutex per key, created on demand and dropped when nobody holds it.

    Used to serialize check-then-insert sequences (e.g. slot booking per
    salon day) between request threads of one worker process. The row
    lock taken in the same transaction covers multi-process deployments
    on Postgres.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[Hashable, threading.Lock] = {}
        self._waiters: dict[Hashable, int] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._waiters[key] = self._waiters.get(key, 0) + 1
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                self._waiters[key] -= 1
                if self._waiters[key] == 0:
                    del self._waiters[key]
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


# Process-wide registry for booking schedules
schedule_locks = KeyedLock()
