"""Per-key mutual exclusion for aggregate mutations.

A lock is held across the complete load → mutate → commit cycle of a single
aggregate, so two callers working on the same slot (or the same order) are
serialized while unrelated keys proceed in parallel. Callers that need both
an order and a slot always take the order lock first.
"""

from contextlib import contextmanager
from threading import Lock


class KeyedLocks:
    """A registry of mutexes created on demand and discarded when idle."""

    def __init__(self) -> None:
        self._guard = Lock()
        self._entries: dict[str, list] = {}  # key -> [lock, waiters]

    @contextmanager
    def hold(self, key):
        key = str(key)
        with self._guard:
            entry = self._entries.setdefault(key, [Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._entries[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)


order_locks = KeyedLocks()
slot_locks = KeyedLocks()
