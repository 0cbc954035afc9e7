# pathpicker_sync/Sync/exceptions.py
#
#
#######################################################################################################################
#
# Functions:
from typing import Optional


class SyncEngineError(Exception):
    """Base exception for selection sync engine errors."""
    pass


class InputError(ValueError):
    """Raised for invalid local input (missing/unreadable resource, bad record attributes)."""
    pass


class RemoteStoreError(SyncEngineError):
    """
    Raised when a remote store operation fails.

    Attributes:
        operation (Optional[str]): The remote operation that failed (e.g. "get", "put", "scan").
        key (Optional[str]): The resource key involved, if any.
    """

    def __init__(self, message="Remote store operation failed.", operation: Optional[str] = None, key: Optional[str] = None):
        super().__init__(message)
        self.operation = operation
        self.key = key

    def __str__(self):
        base = super().__str__()
        details = []
        if self.operation:
            details.append(f"Operation: {self.operation}")
        if self.key:
            details.append(f"Key: {self.key}")
        return f"{base} ({', '.join(details)})" if details else base


class RemoteConnectionError(RemoteStoreError):
    """Raised for network, timeout or endpoint issues talking to the remote store."""
    pass


class SchemaNotReadyError(SyncEngineError):
    """Raised by a strict schema check when the remote table never became usable."""
    pass


class ClientConstructionError(SyncEngineError):
    """Raised when the remote client cannot be built. Fatal to startup."""
    pass

#
# End of pathpicker_sync/Sync/exceptions.py
########################################################################################################################
