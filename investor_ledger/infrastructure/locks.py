"""Per-account locks serializing ledger read-modify-write cycles"""

import threading
import weakref
from contextlib import contextmanager
from typing import Iterator


class AccountLockRegistry:
    """
    One lock per account id.

    A mutation holds its account's lock from load to commit so two requests can
    never interleave on the same ledger. Different accounts never contend.
    Entries are weakly held and drop out once no request is using them.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()

    def __len__(self) -> int:
        return len(self._locks)

    def lock_for(self, account_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(account_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[account_id] = lock
            return lock

    @contextmanager
    def hold(self, account_id: str) -> Iterator[None]:
        lock = self.lock_for(account_id)
        with lock:
            yield


account_locks = AccountLockRegistry()
