# pending_buffer.py
# Description: Deduplicated queue of local changes waiting to be pushed to the remote store.
#
# Imports
import threading
from typing import Iterable, List
#
# Third-Party Imports
from loguru import logger
#
# Local Imports
from pathpicker_sync.Sync.records import Record
#
#######################################################################################################################
#
# Functions:


class PendingChangeBuffer:
    """
    Holds at most one record per key, in arrival order.

    The buffer owns its own lock, separate from the sync pass lock, so `add` never waits
    behind network I/O. Linear scans are fine for the expected sizes (tens to low
    thousands of entries between passes).
    """

    def __init__(self):
        self._records: List[Record] = []
        self._lock = threading.Lock()

    def add(self, record: Record) -> None:
        """Queues `record`, replacing any entry already queued for the same key."""
        with self._lock:
            self._records = [r for r in self._records if r.key != record.key]
            self._records.append(record)
        logger.debug(f"Added record to pending list: {record.key}")

    def drain_snapshot(self) -> List[Record]:
        """Copies the current contents. Does not clear them."""
        with self._lock:
            return list(self._records)

    def remove_processed(self, processed: Iterable[Record]) -> int:
        """
        Removes entries that are still the exact records a sync pass snapshotted.

        An entry replaced by a newer `add` while the pass was running stays queued.
        Returns the number of entries removed.
        """
        processed_ids = {id(r) for r in processed}
        with self._lock:
            before = len(self._records)
            self._records = [r for r in self._records if id(r) not in processed_ids]
            return before - len(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def is_empty(self) -> bool:
        return len(self) == 0
