# remote_client.py
# Description: Contract and implementations for the durable remote record store.
#
"""
remote_client.py
----------------

The remote side of the selection sync engine.

- `RemoteSyncClient`: the contract every backend honours (schema readiness, point
  lookup, point upsert, full scan, close).
- `DynamoDBSyncClient`: live backend on Amazon DynamoDB via boto3. One table, hash key
  `filePath`; attributes `timestamp` (N), `username` (S), `selected` (BOOL).
- `SimulatedSyncClient`: development/test backend. Never touches the network; scans
  round-trip the pending buffer's contents.
- `create_remote_client`: picks the backend from `SyncSettings.mode`.

Only `ensure_schema_ready` is lenient: a table that does not become ACTIVE in time is
logged and the caller proceeds. Every other failure is raised as a `RemoteStoreError`
(or its `RemoteConnectionError` subclass) for the caller to handle.
"""
# Imports
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional
#
# Third-Party Libraries
import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)
from loguru import logger
#
# Local Imports
from pathpicker_sync.Constants import (
    DEFAULT_READ_CAPACITY,
    DEFAULT_REGION,
    DEFAULT_SCHEMA_POLL_ATTEMPTS,
    DEFAULT_SCHEMA_POLL_BACKOFF,
    DEFAULT_SCHEMA_POLL_INTERVAL_SECONDS,
    DEFAULT_TABLE_NAME,
    DEFAULT_WRITE_CAPACITY,
    KEY_FILEPATH,
    SYNC_MODE_LIVE,
    SYNC_MODE_SIMULATED,
    TABLE_STATUS_ACTIVE,
)
from pathpicker_sync.Metrics.metrics import log_counter
from pathpicker_sync.Sync.exceptions import (
    ClientConstructionError,
    InputError,
    RemoteConnectionError,
    RemoteStoreError,
    SchemaNotReadyError,
)
from pathpicker_sync.Sync.pending_buffer import PendingChangeBuffer
from pathpicker_sync.Sync.records import Record
#
#######################################################################################################################
#
# Functions:

_CONNECTION_ERRORS = (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError)


def _count_call(operation: str, outcome: str, mode: str) -> None:
    log_counter(
        "remote_store_calls_total",
        labels={"operation": operation, "outcome": outcome, "mode": mode},
        documentation="Remote store calls by operation and outcome.",
    )


class RemoteSyncClient(ABC):
    """Contract for the durable key-value store holding one Record per resource key."""

    mode: str = ""

    @abstractmethod
    def ensure_schema_ready(self, strict: bool = False) -> bool:
        """
        Makes sure the table exists, creating it if needed. Idempotent.

        Returns True when the table is usable, False when readiness could not be
        confirmed in time (a warning is logged). With `strict=True` the latter raises
        `SchemaNotReadyError` instead.
        """
        ...

    @abstractmethod
    def get(self, key: str) -> Optional[Record]:
        """Point lookup. None for a missing key; every other failure is raised."""
        ...

    @abstractmethod
    def put(self, record: Record) -> None:
        """Unconditional upsert of the record's full attribute set."""
        ...

    @abstractmethod
    def scan_all(self) -> List[Record]:
        """Full-table read. Used at startup and for manual reloads."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Releases network resources."""
        ...


class DynamoDBSyncClient(RemoteSyncClient):
    """
    Live backend on Amazon DynamoDB (low-level boto3 client).

    Credentials come from the ambient AWS chain (or a named profile). The instance is
    shared read-only after construction; the botocore client is thread-safe.
    """

    mode = SYNC_MODE_LIVE

    def __init__(self,
                 table_name: str = DEFAULT_TABLE_NAME,
                 region: str = DEFAULT_REGION,
                 endpoint_url: Optional[str] = None,
                 profile: Optional[str] = None,
                 read_capacity: int = DEFAULT_READ_CAPACITY,
                 write_capacity: int = DEFAULT_WRITE_CAPACITY,
                 poll_interval_seconds: float = DEFAULT_SCHEMA_POLL_INTERVAL_SECONDS,
                 poll_attempts: int = DEFAULT_SCHEMA_POLL_ATTEMPTS,
                 poll_backoff: float = DEFAULT_SCHEMA_POLL_BACKOFF,
                 client: Any = None,
                 sleep: Callable[[float], None] = time.sleep):
        if not table_name:
            raise ClientConstructionError("A table name is required for the DynamoDB client.")
        self.table_name = table_name
        self.read_capacity = read_capacity
        self.write_capacity = write_capacity
        self.poll_interval_seconds = max(0.0, float(poll_interval_seconds))
        self.poll_attempts = max(1, int(poll_attempts))
        self.poll_backoff = max(1.0, float(poll_backoff))
        self._sleep = sleep
        self._schema_ready = False
        self._closed = False
        self._close_lock = threading.Lock()

        if client is not None:
            self._client = client
        else:
            try:
                session = boto3.session.Session(profile_name=profile, region_name=region)
                self._client = session.client(
                    "dynamodb",
                    endpoint_url=endpoint_url,
                    config=BotoConfig(retries={"max_attempts": 3, "mode": "standard"}),
                )
            except (BotoCoreError, ClientError, ValueError) as e:
                logger.exception(f"Failed to initialize DynamoDB client (region={region}, profile={profile}): {e}")
                raise ClientConstructionError(f"Failed to initialize DynamoDB client: {e}") from e
        logger.info(f"DynamoDB client initialized for table '{self.table_name}' (region={region}, endpoint={endpoint_url or 'default'})")

    # --- Error translation ---

    def _wrap_error(self, error: Exception, operation: str, key: Optional[str] = None) -> RemoteStoreError:
        if isinstance(error, _CONNECTION_ERRORS):
            return RemoteConnectionError(f"Could not reach DynamoDB: {error}", operation=operation, key=key)
        if isinstance(error, ClientError):
            code = error.response.get("Error", {}).get("Code", "Unknown")
            message = error.response.get("Error", {}).get("Message", str(error))
            return RemoteStoreError(f"DynamoDB error {code}: {message}", operation=operation, key=key)
        return RemoteStoreError(f"DynamoDB call failed: {error}", operation=operation, key=key)

    @staticmethod
    def _error_code(error: ClientError) -> str:
        return error.response.get("Error", {}).get("Code", "")

    # --- Schema readiness ---

    def _table_status(self) -> str:
        response = self._client.describe_table(TableName=self.table_name)
        return response.get("Table", {}).get("TableStatus", "")

    def _create_table(self) -> None:
        logger.info(f"DynamoDB table '{self.table_name}' not found, creating...")
        try:
            self._client.create_table(
                TableName=self.table_name,
                KeySchema=[{"AttributeName": KEY_FILEPATH, "KeyType": "HASH"}],
                AttributeDefinitions=[{"AttributeName": KEY_FILEPATH, "AttributeType": "S"}],
                ProvisionedThroughput={
                    "ReadCapacityUnits": self.read_capacity,
                    "WriteCapacityUnits": self.write_capacity,
                },
            )
        except ClientError as e:
            # Another process won the race to create it; just wait for it.
            if self._error_code(e) != "ResourceInUseException":
                raise
            logger.info(f"DynamoDB table '{self.table_name}' is already being created elsewhere")

    def _wait_until_active(self) -> bool:
        delay = self.poll_interval_seconds
        for attempt in range(1, self.poll_attempts + 1):
            self._sleep(delay)
            try:
                status = self._table_status()
                logger.debug(f"Table '{self.table_name}' status after poll {attempt}/{self.poll_attempts}: {status}")
                if status == TABLE_STATUS_ACTIVE:
                    return True
            except (ClientError, BotoCoreError) as e:
                logger.warning(f"Error while waiting for table creation (attempt {attempt}/{self.poll_attempts}): {e}")
            delay *= self.poll_backoff
        return False

    def ensure_schema_ready(self, strict: bool = False) -> bool:
        if self._schema_ready:
            return True
        try:
            status = self._table_status()
            if status == TABLE_STATUS_ACTIVE:
                logger.info(f"DynamoDB table '{self.table_name}' already exists")
                ready = True
            else:
                logger.info(f"DynamoDB table '{self.table_name}' exists with status '{status}', waiting for it")
                ready = self._wait_until_active()
        except ClientError as e:
            if self._error_code(e) != "ResourceNotFoundException":
                _count_call("describe_table", "error", self.mode)
                raise self._wrap_error(e, "describe_table") from e
            try:
                self._create_table()
            except (ClientError, BotoCoreError) as create_error:
                _count_call("create_table", "error", self.mode)
                raise self._wrap_error(create_error, "create_table") from create_error
            ready = self._wait_until_active()
        except BotoCoreError as e:
            _count_call("describe_table", "error", self.mode)
            raise self._wrap_error(e, "describe_table") from e

        if ready:
            self._schema_ready = True
            logger.info(f"DynamoDB table '{self.table_name}' is ready")
            return True
        logger.warning(f"DynamoDB table '{self.table_name}' creation may not have completed "
                       f"after {self.poll_attempts} attempts; continuing")
        if strict:
            raise SchemaNotReadyError(f"Table '{self.table_name}' did not become ACTIVE in time")
        return False

    # --- Record operations ---

    def get(self, key: str) -> Optional[Record]:
        try:
            response = self._client.get_item(
                TableName=self.table_name,
                Key={KEY_FILEPATH: {"S": key}},
            )
        except (ClientError, BotoCoreError) as e:
            _count_call("get", "error", self.mode)
            raise self._wrap_error(e, "get", key) from e
        _count_call("get", "success", self.mode)
        item = response.get("Item")
        if not item:
            return None
        try:
            return Record.from_item(item)
        except InputError as e:
            raise RemoteStoreError(f"Malformed remote item: {e}", operation="get", key=key) from e

    def put(self, record: Record) -> None:
        try:
            self._client.put_item(TableName=self.table_name, Item=record.to_item())
        except (ClientError, BotoCoreError) as e:
            _count_call("put", "error", self.mode)
            raise self._wrap_error(e, "put", record.key) from e
        _count_call("put", "success", self.mode)

    def scan_all(self) -> List[Record]:
        records: List[Record] = []
        skipped = 0
        try:
            paginator = self._client.get_paginator("scan")
            for page in paginator.paginate(TableName=self.table_name):
                for item in page.get("Items", []):
                    try:
                        records.append(Record.from_item(item))
                    except InputError as e:
                        skipped += 1
                        logger.warning(f"Skipping malformed item during scan: {e}")
        except (ClientError, BotoCoreError) as e:
            _count_call("scan", "error", self.mode)
            raise self._wrap_error(e, "scan") from e
        _count_call("scan", "success", self.mode)
        logger.info(f"Loaded {len(records)} records from DynamoDB ({skipped} skipped)")
        return records

    def close(self) -> None:
        with self._close_lock:
            if self._closed:
                logger.debug("DynamoDB client already closed")
                return
            self._closed = True
        close = getattr(self._client, "close", None)
        if callable(close):
            close()
        logger.info("DynamoDB client closed")


class SimulatedSyncClient(RemoteSyncClient):
    """
    Network-free backend for local development and tests.

    `get` never finds anything, `put` is only counted, and `scan_all` returns what is
    currently queued in the pending buffer.
    """

    mode = SYNC_MODE_SIMULATED

    def __init__(self, buffer: PendingChangeBuffer):
        self._buffer = buffer
        self.put_count = 0
        self._lock = threading.Lock()
        self._closed = False
        logger.info("Running in simulated mode, remote operations will not touch the network")

    def ensure_schema_ready(self, strict: bool = False) -> bool:
        logger.debug("SIMULATED: schema is always ready")
        return True

    def get(self, key: str) -> Optional[Record]:
        _count_call("get", "success", self.mode)
        return None

    def put(self, record: Record) -> None:
        with self._lock:
            self.put_count += 1
        _count_call("put", "success", self.mode)
        logger.debug(f"SIMULATED: put {record.key} (selected={record.selected}, ts={record.timestamp})")

    def scan_all(self) -> List[Record]:
        records = self._buffer.drain_snapshot()
        _count_call("scan", "success", self.mode)
        logger.info(f"SIMULATED: loaded {len(records)} records from the pending buffer")
        return records

    def close(self) -> None:
        self._closed = True


def create_remote_client(settings, buffer: PendingChangeBuffer) -> RemoteSyncClient:
    """
    Builds the backend selected by `settings.mode`.

    Raises:
        ClientConstructionError: If the live client cannot be set up.
    """
    if settings.is_simulated:
        return SimulatedSyncClient(buffer)
    return DynamoDBSyncClient(
        table_name=settings.table_name,
        region=settings.region,
        endpoint_url=settings.endpoint_url,
        profile=settings.profile,
        read_capacity=settings.read_capacity,
        write_capacity=settings.write_capacity,
        poll_interval_seconds=settings.schema_poll_interval_seconds,
        poll_attempts=settings.schema_poll_attempts,
        poll_backoff=settings.schema_poll_backoff,
    )

#
# End of remote_client.py
#######################################################################################################################
