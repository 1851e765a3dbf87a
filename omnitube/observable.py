"""Observable state containers.

Models publish their mutable fields through ``Observable`` slots. Observers
subscribe with a callback and are notified synchronously, in subscription
order, on every change. Propagation between components is explicit: a
model that wants to re-announce another model's change subscribes to it and
calls ``Signal.emit`` itself.
"""

import logging
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Signal(Generic[T]):
    """A publish/subscribe channel without stored state."""

    def __init__(self) -> None:
        self._subscribers: list[Callable[[T], None]] = []

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register a callback. Returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def emit(self, value: T) -> None:
        for callback in list(self._subscribers):
            try:
                callback(value)
            except Exception:
                logger.exception("Observer raised while handling a change")


class Observable(Signal[T]):
    """A single published value."""

    def __init__(self, value: T, notify_unchanged: bool = False):
        super().__init__()
        self._value = value
        self._notify_unchanged = notify_unchanged

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        if value == self._value and not self._notify_unchanged:
            return
        self._value = value
        self.emit(value)
