import logging
import threading
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class ReplayLedger:
    """
    In-memory record of the highest accepted read counter per tag UID.

    Scope is the current process only. Entries are never removed.

    The check-and-update in advance() is atomic per UID: each UID has its
    own lock, so taps of one tag are serialized while taps of different
    tags never wait on each other.
    """

    def __init__(self) -> None:
        self._counters: Dict[str, int] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @staticmethod
    def _canonical(uid: str) -> str:
        return uid.lower()

    def _lock_for(self, uid: str) -> threading.Lock:
        uid = self._canonical(uid)
        with self._locks_guard:
            lock = self._locks.get(uid)
            if lock is None:
                lock = threading.Lock()
                self._locks[uid] = lock
            return lock

    def advance(self, uid: str, counter: int) -> bool:
        """
        Record counter for uid if it is strictly greater than the stored one
        (or nothing is stored yet). Returns False, leaving the ledger
        untouched, when the counter is stale.
        """
        if counter < 0:
            raise ValueError("Read counter cannot be negative.")

        uid = self._canonical(uid)
        with self._lock_for(uid):
            last = self._counters.get(uid)
            if last is not None and counter <= last:
                logger.debug("Stale counter %d for %s (last %d)", counter, uid, last)
                return False

            self._counters[uid] = counter
            return True

    def last_counter(self, uid: str) -> Optional[int]:
        return self._counters.get(self._canonical(uid))

    def __contains__(self, uid: str) -> bool:
        return self.last_counter(uid) is not None

    def __len__(self) -> int:
        return len(self._counters)
