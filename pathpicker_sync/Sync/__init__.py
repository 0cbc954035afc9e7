# pathpicker_sync/Sync/__init__.py
from .conflict import Resolution, incoming_wins, resolve
from .engine import SelectionSyncContext
from .exceptions import (
    SyncEngineError, InputError, RemoteStoreError,
    RemoteConnectionError, SchemaNotReadyError, ClientConstructionError
)
from .local_store import LocalRecordStore
from .observer_bus import Channel, ObserverBus
from .pending_buffer import PendingChangeBuffer
from .records import Record, now_millis
from .remote_client import (
    RemoteSyncClient, DynamoDBSyncClient, SimulatedSyncClient, create_remote_client
)
from .scheduler import FailedPushPolicy, SyncPassResult, SyncScheduler

__all__ = [
    "Resolution", "incoming_wins", "resolve",
    "SelectionSyncContext",
    "SyncEngineError", "InputError", "RemoteStoreError",
    "RemoteConnectionError", "SchemaNotReadyError", "ClientConstructionError",
    "LocalRecordStore",
    "Channel", "ObserverBus",
    "PendingChangeBuffer",
    "Record", "now_millis",
    "RemoteSyncClient", "DynamoDBSyncClient", "SimulatedSyncClient", "create_remote_client",
    "FailedPushPolicy", "SyncPassResult", "SyncScheduler",
]
