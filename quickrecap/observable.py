"""Small observable value used to publish state to the CLI and HTTP layers."""

import logging
import threading
from typing import Callable, Generic, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BehaviorValue(Generic[T]):
    """Holds a current value and notifies subscribers on every update.

    New subscribers are called immediately with the current value, so a
    late listener never misses the state it should be showing.
    """

    def __init__(self, value: T):
        self._value = value
        self._subscribers: List[Callable[[T], None]] = []
        self._lock = threading.Lock()

    @property
    def value(self) -> T:
        return self._value

    def accept(self, value: T) -> None:
        with self._lock:
            self._value = value
            subscribers = list(self._subscribers)
        for callback in subscribers:
            callback(value)

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register ``callback`` and return a function that unregisters it."""
        with self._lock:
            self._subscribers.append(callback)
            value = self._value
        callback(value)

        def dispose() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return dispose
