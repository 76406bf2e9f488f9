"""
In-process mutual exclusion keyed by train id.

Every write to a train's seat counter (allocation, cancellation, admin
resize) runs inside `train_lock(train_id)`. Holders of different keys
never wait on each other.
"""
import threading
from contextlib import contextmanager


class KeyedLockRegistry:
    """Hands out one lock per key; entries are dropped once nobody uses them."""

    def __init__(self):
        self._guard = threading.Lock()
        self._entries = {}  # key -> [lock, users]

    @contextmanager
    def hold(self, key):
        key = str(key)
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = [threading.Lock(), 0]
            entry[1] += 1

        entry[0].acquire()
        try:
            yield
        finally:
            entry[0].release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._entries[key]

    def active_keys(self):
        with self._guard:
            return set(self._entries)


_train_locks = KeyedLockRegistry()


def train_lock(train_id):
    """Serialize seat-counter writes for one train within this process."""
    return _train_locks.hold(train_id)
