# observer_bus.py
# Description: Fan-out notifications so presentation layers can react to store mutations.
#
# Imports
import logging
import threading
import uuid
from enum import Enum
from typing import Any, Callable, Dict, Hashable, Optional
#
# Local Imports
from pathpicker_sync.Constants import (
    CHANNEL_DIRECTORY_CHANGED,
    CHANNEL_RECORD_CHANGED,
    CHANNEL_RESOURCE_LIST_CHANGED,
)
#
#######################################################################################################################
#
# Functions:

logger = logging.getLogger(__name__)


class Channel(str, Enum):
    DIRECTORY_CHANGED = CHANNEL_DIRECTORY_CHANGED
    RESOURCE_LIST_CHANGED = CHANNEL_RESOURCE_LIST_CHANGED
    RECORD_CHANGED = CHANNEL_RECORD_CHANGED


class ObserverBus:
    """
    Three independent channels, each a mapping from subscriber to callback.

    `publish` runs every callback of the channel synchronously, in registration order,
    on the calling thread. Consumers that need a particular thread (a UI loop, say)
    must re-dispatch inside their callback. There is no unsubscribe: the bus lives as
    long as the process.
    """

    def __init__(self):
        self._subscribers: Dict[Channel, Dict[Hashable, Callable[[Any], None]]] = {
            channel: {} for channel in Channel
        }
        self._lock = threading.Lock()

    def subscribe(self, channel: Channel, callback: Callable[[Any], None], subscriber: Optional[Hashable] = None) -> Hashable:
        """
        Registers `callback` on `channel`. Returns the subscriber token.

        Re-subscribing an existing token replaces its callback but keeps its position.
        """
        channel = Channel(channel)
        if not callable(callback):
            raise TypeError(f"Callback for channel '{channel.value}' must be callable, got {type(callback)}")
        token = subscriber if subscriber is not None else uuid.uuid4().hex
        with self._lock:
            self._subscribers[channel][token] = callback
        logger.debug(f"Subscriber '{token}' registered on channel '{channel.value}'")
        return token

    def publish(self, channel: Channel, payload: Any) -> int:
        """Invokes every callback registered on `channel`. Returns the number of callbacks run."""
        channel = Channel(channel)
        with self._lock:
            callbacks = list(self._subscribers[channel].items())
        for token, callback in callbacks:
            try:
                callback(payload)
            except Exception as e:
                # One broken subscriber must not stop the others or fail the mutation that published.
                logger.error(f"Subscriber '{token}' on channel '{channel.value}' raised: {e}", exc_info=True)
        return len(callbacks)

    def subscriber_count(self, channel: Channel) -> int:
        with self._lock:
            return len(self._subscribers[Channel(channel)])

#
# End of observer_bus.py
#######################################################################################################################
