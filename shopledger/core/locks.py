"""
Keyed Locks
Per-key serialization points for read-modify-write of shared rows
"""
import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator, List


class KeyedLockRegistry:
    """
    One lock per key, created on demand and dropped once nobody holds or
    waits on it.

    Holding ``hold(("sale", 42))`` serializes every ledger mutation of sale 42
    inside this process while leaving other sales untouched. Cross-process
    writers are covered by the row lock and version counter on the sale.
    """

    def __init__(self):
        self._guard = threading.Lock()
        # key -> [lock, number of holders + waiters]
        self._entries: Dict[Hashable, List] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._entries[key] = entry
            entry[1] += 1

        lock = entry[0]
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._entries[key]

    def active_keys(self) -> int:
        """Number of keys currently held or awaited"""
        with self._guard:
            return len(self._entries)


# Process-wide registry shared by the ledger services
ledger_locks = KeyedLockRegistry()


def sale_lock_key(sale_id: int) -> tuple:
    return ("sale", sale_id)


def sequence_lock_key(name: str) -> tuple:
    return ("sequence", name)
