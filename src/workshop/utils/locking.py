"""Per-item mutual exclusion for lifecycle and routing commands.

Every OrderItem is a unit of mutual exclusion. ``process_serialized`` holds the
locks of all items a command touches for the whole dispatch, so the state
check, the write and the unit-of-work commit happen under the lock. Locks are
acquired in sorted id order to keep batch operations deadlock-free.

The registry is per process; across processes the item ``revision`` check
(``expected_revision`` on item commands) catches stale writers.
"""

import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from protean.utils.globals import current_domain

from workshop.config import item_lock_timeout
from workshop.errors import ConcurrentModification


class _LockEntry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class ItemLocks:
    """Lock registry keyed by item id. An entry lives only while someone holds or waits on it."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, _LockEntry] = {}

    def _checkout(self, item_id: str) -> _LockEntry:
        with self._guard:
            entry = self._locks.get(item_id)
            if entry is None:
                entry = self._locks[item_id] = _LockEntry()
            entry.users += 1
            return entry

    def _checkin(self, item_id: str, entry: _LockEntry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[item_id]

    @contextmanager
    def hold(self, item_ids: Iterable[str], timeout: float = 5.0) -> Iterator[list[str]]:
        """Acquire every item lock or none; raise ConcurrentModification on timeout."""
        ordered = sorted({str(item_id) for item_id in item_ids})
        checked_out: list[tuple[str, _LockEntry]] = []
        acquired: list[_LockEntry] = []
        try:
            for item_id in ordered:
                entry = self._checkout(item_id)
                checked_out.append((item_id, entry))
                if not entry.lock.acquire(timeout=timeout):
                    raise ConcurrentModification(item_id)
                acquired.append(entry)
            yield ordered
        finally:
            for entry in reversed(acquired):
                entry.lock.release()
            for item_id, entry in reversed(checked_out):
                self._checkin(item_id, entry)


item_locks = ItemLocks()


def process_serialized(command, item_ids: Iterable[str]):
    """Process ``command`` synchronously while holding the locks of ``item_ids``."""
    with item_locks.hold(item_ids, timeout=item_lock_timeout()):
        return current_domain.process(command, asynchronous=False)
