# Tests/Sync/conftest.py
#
# Imports
import threading
from typing import Dict, List, Optional
#
# Third-Party Imports
import pytest
#
# Local Imports
from pathpicker_sync.config import SyncSettings
from pathpicker_sync.Sync.exceptions import RemoteConnectionError
from pathpicker_sync.Sync.observer_bus import ObserverBus
from pathpicker_sync.Sync.pending_buffer import PendingChangeBuffer
from pathpicker_sync.Sync.records import Record
from pathpicker_sync.Sync.remote_client import RemoteSyncClient
#
#######################################################################################################################
#
# --- Fakes ---

class FakeRemote(RemoteSyncClient):
    """In-memory remote table that records every call and can be told to fail per key."""

    mode = "fake"

    def __init__(self, records: Optional[List[Record]] = None):
        self.table: Dict[str, Record] = {r.key: r for r in (records or [])}
        self.calls: List[tuple] = []
        self.fail_get_keys = set()
        self.fail_put_keys = set()
        self.fail_scan = False
        self.schema_ready = True
        self.closed = 0
        self.on_get = None
        self.on_scan = None
        self._lock = threading.Lock()

    def ensure_schema_ready(self, strict: bool = False) -> bool:
        self.calls.append(("ensure_schema_ready",))
        return self.schema_ready

    def get(self, key: str) -> Optional[Record]:
        self.calls.append(("get", key))
        if self.on_get is not None:
            self.on_get(key)
        if key in self.fail_get_keys:
            raise RemoteConnectionError("simulated outage", operation="get", key=key)
        with self._lock:
            return self.table.get(key)

    def put(self, record: Record) -> None:
        self.calls.append(("put", record.key))
        if record.key in self.fail_put_keys:
            raise RemoteConnectionError("simulated outage", operation="put", key=record.key)
        with self._lock:
            self.table[record.key] = record

    def scan_all(self) -> List[Record]:
        self.calls.append(("scan_all",))
        if self.on_scan is not None:
            self.on_scan()
        if self.fail_scan:
            raise RemoteConnectionError("simulated outage", operation="scan")
        with self._lock:
            return list(self.table.values())

    def close(self) -> None:
        self.calls.append(("close",))
        self.closed += 1

    def call_names(self) -> List[str]:
        return [c[0] for c in self.calls]


# --- Fixtures ---

@pytest.fixture
def make_record():
    """Factory for valid records with overridable fields."""
    def _make(key="/data/a.txt", timestamp=1000, writer="alice", selected=True) -> Record:
        return Record(key=key, timestamp=timestamp, writer=writer, selected=selected)
    return _make


@pytest.fixture
def bus():
    return ObserverBus()


@pytest.fixture
def buffer():
    return PendingChangeBuffer()


@pytest.fixture
def fake_remote():
    return FakeRemote()


@pytest.fixture
def settings(tmp_path):
    return SyncSettings(writer="tester", interval_seconds=3600, shutdown_timeout_seconds=1.0,
                        start_directory=tmp_path)

#
# End of Tests/Sync/conftest.py
#######################################################################################################################
