"""Delivery of emitted logs to subscribers, and block number conversion."""

from __future__ import annotations

import threading
from typing import Any, Callable, Iterable, Union

from .errors import BroadcastError, ConversionError
from .instruction import Log

__all__ = ["EventBroadcaster", "EventSender", "convert_uint_to_u64"]

_U64_MAX = (1 << 64) - 1

EventSender = Union[Callable[[list[Log]], Any], Any]


def _deliver(sender: EventSender, logs: list[Log]) -> None:
    put = getattr(sender, "put", None)
    if callable(put):
        put(logs)
    elif callable(sender):
        sender(logs)
    else:
        raise TypeError(f"cannot send logs to {type(sender).__name__}")


class EventBroadcaster:
    """Sends the logs of every transaction to each registered subscriber.

    A subscriber is either an object with a ``put`` method, such as a
    ``queue.Queue``, or a callable taking the list of logs. Each subscriber
    receives its own copy of the list.
    """

    def __init__(self) -> None:
        self._senders: list[EventSender] = []
        self._lock = threading.Lock()

    def add_sender(self, sender: EventSender) -> None:
        """Register a subscriber that receives every later broadcast."""
        if not (callable(getattr(sender, "put", None)) or callable(sender)):
            raise TypeError(f"cannot send logs to {type(sender).__name__}")
        with self._lock:
            self._senders.append(sender)

    def broadcast(self, logs: Iterable[Log]) -> None:
        """Send ``logs`` to every subscriber in registration order.

        Raises BroadcastError on the first subscriber that cannot take them.
        """
        logs = list(logs)
        with self._lock:
            senders = list(self._senders)
        for sender in senders:
            try:
                _deliver(sender, list(logs))
            except Exception as exc:
                raise BroadcastError(logs) from exc

    def __len__(self) -> int:
        with self._lock:
            return len(self._senders)

    def __repr__(self) -> str:
        return f"EventBroadcaster(senders={len(self)})"


def convert_uint_to_u64(value: int) -> int:
    """Check that a 256-bit unsigned value fits in 64 bits and return it."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"expected an integer, got {type(value).__name__}")
    if not 0 <= value <= _U64_MAX:
        raise ConversionError("U256 value is too large to fit into u64")
    return value