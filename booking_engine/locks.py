import threading
import weakref
from contextlib import contextmanager
from datetime import date
from typing import Iterator

_REGISTRY_LOCK = threading.Lock()
# entries vanish once no caller holds or waits on the lock
_DATE_LOCKS = weakref.WeakValueDictionary()


class LockTimeout(Exception):
    def __init__(self, on_date: date, timeout: float):
        super().__init__(f"Timed out after {timeout}s waiting for ledger of {on_date.isoformat()}")
        self.date = on_date
        self.timeout = timeout


def _lock_for(on_date: date) -> threading.Lock:
    with _REGISTRY_LOCK:
        lock = _DATE_LOCKS.get(on_date)
        if lock is None:
            lock = _DATE_LOCKS[on_date] = threading.Lock()
        return lock


@contextmanager
def date_lock(on_date: date, timeout: float) -> Iterator[None]:
    """Serialize ledger commits for one date inside this process.

    Different dates never wait on each other. Raises ``LockTimeout`` when the
    lock is not acquired within ``timeout`` seconds.
    """
    lock = _lock_for(on_date)
    if not lock.acquire(timeout=max(timeout, 0)):
        raise LockTimeout(on_date, timeout)
    try:
        yield
    finally:
        lock.release()
