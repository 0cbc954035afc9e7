# scheduler.py
# Description: Periodic and on-demand sync passes that push pending local changes to the remote store.
#
# Imports
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional
#
# Third-Party Imports
from loguru import logger
#
# Local Imports
from pathpicker_sync.Constants import (
    DEFAULT_SHUTDOWN_TIMEOUT_SECONDS,
    DEFAULT_SYNC_INTERVAL_SECONDS,
    FAILED_PUSH_DROP,
    FAILED_PUSH_RETRY,
)
from pathpicker_sync.Metrics.metrics import log_counter, log_gauge, log_histogram
from pathpicker_sync.Sync.conflict import incoming_wins
from pathpicker_sync.Sync.pending_buffer import PendingChangeBuffer
from pathpicker_sync.Sync.records import Record
from pathpicker_sync.Sync.remote_client import RemoteSyncClient
#
#######################################################################################################################
#
# Functions:


class FailedPushPolicy(str, Enum):
    """What happens to a queued record whose remote lookup or push failed."""
    # Keep it queued; the next pass tries again.
    RETRY_NEXT_PASS = FAILED_PUSH_RETRY
    # Drop it; it is resent only when the key is toggled again.
    DROP = FAILED_PUSH_DROP


@dataclass
class SyncPassResult:
    attempted: int = 0
    pushed: int = 0
    skipped: int = 0
    failed: int = 0
    duration_seconds: float = 0.0
    failed_keys: List[str] = field(default_factory=list)
    remaining: int = 0

    @property
    def all_succeeded(self) -> bool:
        return self.failed == 0

    def __str__(self) -> str:
        return (f"sync pass: {self.pushed} pushed, {self.skipped} skipped, {self.failed} failed "
                f"of {self.attempted} in {self.duration_seconds:.3f}s ({self.remaining} still pending)")


class SyncScheduler:
    """
    Drives sync passes from a background timer and from manual triggers.

    Both triggers run `run_sync_pass`, serialised by one sync lock, so at most one pass
    runs at a time and a second caller blocks until the first finishes. The pending
    buffer keeps its own lock: a local toggle never waits behind a pass's network calls.
    """

    def __init__(self,
                 buffer: PendingChangeBuffer,
                 remote_client: RemoteSyncClient,
                 interval_seconds: float = DEFAULT_SYNC_INTERVAL_SECONDS,
                 failed_push_policy: FailedPushPolicy = FailedPushPolicy.RETRY_NEXT_PASS,
                 shutdown_timeout_seconds: float = DEFAULT_SHUTDOWN_TIMEOUT_SECONDS):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self.buffer = buffer
        self.remote_client = remote_client
        self.interval_seconds = float(interval_seconds)
        self.failed_push_policy = FailedPushPolicy(failed_push_policy)
        self.shutdown_timeout_seconds = float(shutdown_timeout_seconds)

        self._sync_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.last_sync_at: Optional[float] = None
        self.last_result: Optional[SyncPassResult] = None

    # --- Timer lifecycle ---

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            logger.debug("Sync scheduler already running")
            return
        if self._stop_event.is_set():
            raise RuntimeError("A stopped SyncScheduler cannot be restarted")
        self._thread = threading.Thread(target=self._run_periodic, name="SyncScheduler", daemon=True)
        self._thread.start()
        logger.info(f"Scheduled synchronization every {self.interval_seconds:g} seconds")

    def _run_periodic(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            try:
                self.run_sync_pass()
            except Exception:
                # The timer thread must survive anything a pass throws.
                logger.exception("Unexpected error during periodic sync pass")
        logger.debug("Periodic sync timer stopped")

    def stop(self, timeout: Optional[float] = None) -> SyncPassResult:
        """
        Stops periodic ticks, runs one final pass to flush outstanding changes, then
        waits a bounded time for the timer thread.
        """
        timeout = self.shutdown_timeout_seconds if timeout is None else timeout
        self._stop_event.set()
        logger.info("Running final sync pass before shutdown")
        result = self.run_sync_pass()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning(f"Sync timer thread did not stop within {timeout:g}s; abandoning it")
            self._thread = None
        return result

    # --- Sync pass ---

    def trigger_now(self) -> SyncPassResult:
        """Manual trigger: runs a pass immediately on the calling thread."""
        return self.run_sync_pass()

    def run_sync_pass(self) -> SyncPassResult:
        with self._sync_lock:
            start = time.perf_counter()
            snapshot = self.buffer.drain_snapshot()
            result = SyncPassResult(attempted=len(snapshot))
            if not snapshot:
                logger.debug("No records to synchronize")
                result.duration_seconds = time.perf_counter() - start
                self._record_pass(result)
                return result

            logger.info(f"Synchronizing {len(snapshot)} records with the remote store ({self.remote_client.mode})")
            succeeded: List[Record] = []
            for record in snapshot:
                try:
                    existing = self.remote_client.get(record.key)
                    if incoming_wins(existing, record):
                        self.remote_client.put(record)
                        result.pushed += 1
                        logger.debug(f"Updated remote record: {record.key}")
                    else:
                        result.skipped += 1
                        logger.debug(f"Skipped remote update (remote is same age or newer): {record.key}")
                    succeeded.append(record)
                except Exception as e:
                    # One bad record never aborts the pass.
                    result.failed += 1
                    result.failed_keys.append(record.key)
                    logger.error(f"Error syncing record {record.key}: {e}")

            if self.failed_push_policy is FailedPushPolicy.DROP:
                if result.failed:
                    logger.warning(f"Dropping {result.failed} failed record(s) from the retry queue; "
                                   f"they will be resent on their next toggle")
                self.buffer.remove_processed(snapshot)
            else:
                self.buffer.remove_processed(succeeded)
                if result.failed:
                    logger.warning(f"{result.failed} record(s) failed to sync and stay queued for the next pass")

            result.remaining = len(self.buffer)
            result.duration_seconds = time.perf_counter() - start
            self._record_pass(result)
            logger.info(str(result))
            return result

    def _record_pass(self, result: SyncPassResult) -> None:
        self.last_sync_at = time.time()
        self.last_result = result
        log_histogram("sync_pass_duration_seconds", result.duration_seconds,
                      documentation="Duration of sync passes.")
        for outcome, count in (("pushed", result.pushed), ("skipped", result.skipped), ("failed", result.failed)):
            if count:
                log_counter("sync_records_total", value=count, labels={"outcome": outcome},
                            documentation="Records processed by sync passes, by outcome.")
        log_gauge("sync_pending_records", len(self.buffer), documentation="Records waiting in the pending buffer.")

#
# End of scheduler.py
#######################################################################################################################
