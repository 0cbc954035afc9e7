# records.py
# Description: The immutable selection record exchanged between the local store, the pending buffer and the remote store.
#
# Imports
import time
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional
#
# Third-Party Imports
#
# Local Imports
from pathpicker_sync.Constants import ATTR_SELECTED, ATTR_TIMESTAMP, ATTR_USERNAME, KEY_FILEPATH
from pathpicker_sync.Sync.exceptions import InputError
#
#######################################################################################################################
#
# Functions:


def now_millis() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


@dataclass(frozen=True)
class Record:
    """
    Selection state of one resource.

    `timestamp` is only a logical clock for last-writer-wins resolution. "Updating" a
    record means replacing it with a new one carrying a newer timestamp.
    """
    key: str
    timestamp: int
    writer: str
    selected: bool

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Raises InputError if any field is unusable."""
        if not isinstance(self.key, str) or not self.key.strip():
            raise InputError(f"Record key must be a non-empty string, got {self.key!r}")
        # bool is a subclass of int, but a bool timestamp is always a caller mistake
        if isinstance(self.timestamp, bool) or not isinstance(self.timestamp, int):
            raise InputError(f"Record timestamp must be an integer (ms since epoch), got {self.timestamp!r}")
        if self.timestamp < 0:
            raise InputError(f"Record timestamp must not be negative, got {self.timestamp}")
        if not isinstance(self.writer, str) or not self.writer.strip():
            raise InputError(f"Record writer must be a non-empty string, got {self.writer!r}")
        if not isinstance(self.selected, bool):
            raise InputError(f"Record selected flag must be a bool, got {self.selected!r}")

    def with_selected(self, selected: bool, writer: Optional[str] = None, timestamp: Optional[int] = None) -> "Record":
        """Returns a new record for the same key with a new selection state and a fresh timestamp."""
        return replace(
            self,
            selected=selected,
            writer=writer if writer is not None else self.writer,
            timestamp=timestamp if timestamp is not None else now_millis(),
        )

    def to_item(self) -> Dict[str, Dict[str, Any]]:
        """Typed attribute map as stored in the remote table."""
        return {
            KEY_FILEPATH: {"S": self.key},
            ATTR_TIMESTAMP: {"N": str(self.timestamp)},
            ATTR_USERNAME: {"S": self.writer},
            ATTR_SELECTED: {"BOOL": self.selected},
        }

    @classmethod
    def from_item(cls, item: Mapping[str, Mapping[str, Any]]) -> "Record":
        """
        Builds a record from a remote typed attribute map.

        Raises:
            InputError: If an attribute is missing or has the wrong shape.
        """
        try:
            key = item[KEY_FILEPATH]["S"]
            timestamp = int(item[ATTR_TIMESTAMP]["N"])
            writer = item[ATTR_USERNAME]["S"]
            selected = item[ATTR_SELECTED]["BOOL"]
        except (KeyError, TypeError, ValueError) as e:
            raise InputError(f"Malformed remote item {dict(item)!r}: {e}") from e
        return cls(key=key, timestamp=timestamp, writer=writer, selected=selected)

#
# End of records.py
#######################################################################################################################
