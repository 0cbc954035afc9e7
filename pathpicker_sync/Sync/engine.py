# engine.py
# Description: SelectionSyncContext, the object presentation layers hold to toggle, read and sync selections.
#
# Imports
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Hashable, List, Optional
#
# Third-Party Imports
from loguru import logger
#
# Local Imports
from pathpicker_sync.config import SyncSettings
from pathpicker_sync.Metrics.metrics import init_metrics_server, log_counter, timeit
from pathpicker_sync.Sync.exceptions import RemoteStoreError
from pathpicker_sync.Sync.local_store import LocalRecordStore
from pathpicker_sync.Sync.observer_bus import Channel, ObserverBus
from pathpicker_sync.Sync.pending_buffer import PendingChangeBuffer
from pathpicker_sync.Sync.records import Record, now_millis
from pathpicker_sync.Sync.remote_client import RemoteSyncClient, create_remote_client
from pathpicker_sync.Sync.scheduler import FailedPushPolicy, SyncPassResult, SyncScheduler
#
#######################################################################################################################
#
# Functions:


class SelectionSyncContext:
    """
    Wires the local store, pending buffer, remote client and scheduler together.

    Build one per process and pass it to whoever needs it. A local toggle updates the
    store immediately and is queued for the next sync pass; remote data only enters the
    store through the last-writer-wins merge on startup or reload.

    Args:
        settings: Typed configuration. Defaults to `SyncSettings.from_config()`.
        remote_client: Optional backend override; built from `settings.mode` when omitted.
        clock: Returns the timestamp (epoch millis) stamped on each toggle.

    Raises:
        ClientConstructionError: If the live remote client cannot be created.
    """

    def __init__(self,
                 settings: Optional[SyncSettings] = None,
                 remote_client: Optional[RemoteSyncClient] = None,
                 clock: Callable[[], int] = now_millis):
        self.settings = settings if settings is not None else SyncSettings.from_config()
        self._clock = clock
        self.bus = ObserverBus()
        self.store = LocalRecordStore(self.bus)
        self.buffer = PendingChangeBuffer()
        self.remote_client = remote_client if remote_client is not None else create_remote_client(self.settings, self.buffer)
        self.scheduler = SyncScheduler(
            self.buffer,
            self.remote_client,
            interval_seconds=self.settings.interval_seconds,
            failed_push_policy=FailedPushPolicy(self.settings.failed_push_policy),
            shutdown_timeout_seconds=self.settings.shutdown_timeout_seconds,
        )
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="RecordLoader")
        self._pending_loads: List[Future] = []
        self._state_lock = threading.Lock()
        self._toggle_lock = threading.Lock()
        self._started = False
        self._shut_down = False
        logger.info(f"SelectionSyncContext created (mode={self.remote_client.mode}, writer={self.settings.writer})")

    # --- Lifecycle ---

    def start(self, load_remote: bool = True) -> None:
        with self._state_lock:
            if self._shut_down:
                raise RuntimeError("SelectionSyncContext has been shut down")
            if self._started:
                logger.debug("SelectionSyncContext already started")
                return
            self._started = True

        if self.settings.metrics_enabled:
            try:
                init_metrics_server(self.settings.metrics_port)
            except OSError as e:
                logger.error(f"Could not start the metrics server on port {self.settings.metrics_port}: {e}")

        try:
            if not self.remote_client.ensure_schema_ready():
                logger.warning("Remote table is not ready yet; sync passes may fail until it is")
        except RemoteStoreError as e:
            logger.error(f"Could not verify the remote table: {e}")

        if load_remote:
            try:
                self.reload_from_remote()
            except RemoteStoreError as e:
                logger.error(f"Startup load from the remote store failed: {e}")

        self.scheduler.start()

    def shutdown(self) -> None:
        with self._state_lock:
            if self._shut_down:
                logger.debug("SelectionSyncContext already shut down")
                return
            self._shut_down = True

        logger.info("Shutting down SelectionSyncContext")
        for future in self._pending_loads:
            future.cancel()
        self._executor.shutdown(wait=False, cancel_futures=True)
        self._wait_for_running_loads(self.settings.shutdown_timeout_seconds)
        try:
            self.scheduler.stop()
        finally:
            self.remote_client.close()
        logger.info("SelectionSyncContext shut down")

    def _wait_for_running_loads(self, timeout: float) -> None:
        """Lets a reload that already started finish before the remote client is closed."""
        running = [f for f in self._pending_loads if not f.cancelled()]
        if not running:
            return
        done, not_done = wait(running, timeout=timeout)
        for future in done:
            error = future.exception()
            if error is not None:
                logger.error(f"Background reload failed during shutdown: {error}")
        if not_done:
            logger.warning(f"{len(not_done)} background reload(s) still running after {timeout:g}s; "
                           f"closing the remote client anyway")

    def __enter__(self) -> "SelectionSyncContext":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()

    # --- Selection state ---

    def toggle(self, key: str, selected: bool, writer: Optional[str] = None) -> Record:
        """
        Records a local selection change. The store is updated (and subscribers notified)
        before `toggle` returns, so readers see it at once.

        Store update and enqueue happen under one lock, so the buffer always holds the
        same record as the store for a toggled key. The timestamp is at least one past
        the held record's, so a local toggle outranks anything already merged in, even
        under clock skew or two toggles in the same millisecond.

        Raises:
            InputError: For an empty key or writer, or a non-boolean `selected`. Nothing is queued.
        """
        writer = self.settings.writer if writer is None else writer
        with self._toggle_lock:
            timestamp = self._clock()
            held = self.store.get(key) if isinstance(key, str) else None
            if held is not None and timestamp <= held.timestamp:
                timestamp = held.timestamp + 1
            record = Record(key=key, timestamp=timestamp, writer=writer, selected=selected)
            self.store.put(key, record, notify=False)
            self.buffer.add(record)
        self.bus.publish(Channel.RECORD_CHANGED, record)
        log_counter("selection_toggles_total", labels={"selected": str(selected).lower()},
                    documentation="Local selection toggles.")
        logger.debug(f"Toggled {key} -> {selected} by {writer} at {timestamp}")
        return record

    def is_selected(self, key: str) -> bool:
        record = self.store.get(key)
        return record.selected if record is not None else False

    def get_record(self, key: str) -> Optional[Record]:
        return self.store.get(key)

    def get_all_records(self) -> List[Record]:
        return self.store.get_all()

    def selected_count(self) -> int:
        return sum(1 for record in self.store.get_all() if record.selected)

    def pending_count(self) -> int:
        return len(self.buffer)

    def clear_local_records(self) -> None:
        self.store.clear_all()

    # --- Notifications ---

    def subscribe(self, channel: Channel, callback: Callable[[Any], None]) -> Hashable:
        return self.bus.subscribe(Channel(channel), callback)

    def on_directory_changed(self, callback: Callable[[Any], None]) -> Hashable:
        return self.bus.subscribe(Channel.DIRECTORY_CHANGED, callback)

    def on_resource_list_changed(self, callback: Callable[[Any], None]) -> Hashable:
        return self.bus.subscribe(Channel.RESOURCE_LIST_CHANGED, callback)

    def on_record_changed(self, callback: Callable[[Record], None]) -> Hashable:
        return self.bus.subscribe(Channel.RECORD_CHANGED, callback)

    # --- Sync ---

    def force_sync(self) -> SyncPassResult:
        logger.info("Manual synchronization requested")
        return self.scheduler.trigger_now()

    @timeit("remote_reload", documentation="Time spent loading and merging the remote table.")
    def reload_from_remote(self) -> int:
        """
        Scans the remote store and merges it into the local store.

        Returns:
            Number of records that won the merge.

        Raises:
            RemoteStoreError: If the scan fails.
        """
        records = self.remote_client.scan_all()
        with self._toggle_lock:
            accepted = self.store.merge_many(records, notify=False)
        for record in accepted:
            self.bus.publish(Channel.RECORD_CHANGED, record)
        logger.info(f"Loaded {len(records)} remote records, {len(accepted)} newer than local state")
        return len(accepted)

    def reload_in_background(self) -> Future:
        with self._state_lock:
            if self._shut_down:
                raise RuntimeError("SelectionSyncContext has been shut down")
            future = self._executor.submit(self.reload_from_remote)
            self._pending_loads = [f for f in self._pending_loads if not f.done()]
            self._pending_loads.append(future)
        return future

    @property
    def last_sync_at(self) -> Optional[float]:
        return self.scheduler.last_sync_at

    @property
    def last_sync_result(self) -> Optional[SyncPassResult]:
        return self.scheduler.last_result

#
# End of engine.py
#######################################################################################################################
