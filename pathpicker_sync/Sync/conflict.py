# conflict.py
# Description: Last-writer-wins resolution between two records for the same key.
#
# Imports
from enum import Enum
from typing import Optional
#
# Local Imports
from pathpicker_sync.Sync.records import Record
#
#######################################################################################################################
#
# Functions:


class Resolution(str, Enum):
    KEEP_EXISTING = "keep_existing"
    REPLACE_WITH_INCOMING = "replace_with_incoming"


def resolve(existing: Optional[Record], incoming: Record) -> Resolution:
    """
    Decides whether `incoming` replaces `existing`.

    The incoming record wins only with a strictly greater timestamp; ties keep the
    already-held value so repeated merges are stable. The same rule applies whether
    `existing` is local state (remote scan merge) or remote state (sync pass push).
    """
    if existing is None:
        return Resolution.REPLACE_WITH_INCOMING
    if incoming.timestamp > existing.timestamp:
        return Resolution.REPLACE_WITH_INCOMING
    return Resolution.KEEP_EXISTING


def incoming_wins(existing: Optional[Record], incoming: Record) -> bool:
    return resolve(existing, incoming) is Resolution.REPLACE_WITH_INCOMING

#
# End of conflict.py
#######################################################################################################################
