# local_store.py
# Description: In-memory map of resource key -> latest known Record. Source of truth for interactive reads.
#
# Imports
import threading
from typing import Dict, Iterable, List, Optional
#
# Third-Party Imports
from loguru import logger
#
# Local Imports
from pathpicker_sync.Sync.conflict import incoming_wins
from pathpicker_sync.Sync.observer_bus import Channel, ObserverBus
from pathpicker_sync.Sync.records import Record
#
#######################################################################################################################
#
# Functions:


class LocalRecordStore:
    """
    Thread-safe record map. Callers need no external locking; each key is updated atomically.

    Notifications are published after the internal lock is released so a subscriber can
    read the store from its callback.
    """

    def __init__(self, bus: ObserverBus):
        self._bus = bus
        self._records: Dict[str, Record] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Record]:
        with self._lock:
            return self._records.get(key)

    def put(self, key: str, record: Record, notify: bool = True) -> None:
        """
        Unconditional overwrite. A local toggle is authoritative the moment it happens,
        whatever the timestamp of the record currently held.

        With `notify=False` the caller publishes the change itself, typically after
        releasing a lock of its own.
        """
        if key != record.key:
            raise ValueError(f"Store key '{key}' does not match record key '{record.key}'")
        with self._lock:
            self._records[key] = record
        if notify:
            self._bus.publish(Channel.RECORD_CHANGED, record)

    def merge_many(self, records: Iterable[Record], notify: bool = True) -> List[Record]:
        """
        Merges records from a remote scan using last-writer-wins.

        Returns the records that replaced the held value; a notification fires for each
        unless `notify=False`. Losing records are discarded silently.
        """
        accepted: List[Record] = []
        with self._lock:
            for incoming in records:
                if incoming_wins(self._records.get(incoming.key), incoming):
                    self._records[incoming.key] = incoming
                    accepted.append(incoming)
        if notify:
            for record in accepted:
                self._bus.publish(Channel.RECORD_CHANGED, record)
        logger.debug(f"Merged remote records: {len(accepted)} accepted")
        return accepted

    def get_all(self) -> List[Record]:
        with self._lock:
            return list(self._records.values())

    def clear_all(self) -> None:
        # Bulk reset: no per-entry notifications.
        with self._lock:
            count = len(self._records)
            self._records.clear()
        logger.info(f"Cleared {count} local records")

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
