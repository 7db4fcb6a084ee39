"""Latest-value signal streams with explicit cancel handles.

Every sensor component publishes through a ``SignalStream``: it keeps only the
most recent value (last write wins, no queue) and notifies observers
synchronously on the event loop thread.
"""

import logging
from typing import Callable, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Subscription:
    """Cancel handle returned by providers and streams.

    ``remove()`` is idempotent; calling it on an already removed subscription
    is a no-op.
    """

    def __init__(self, on_remove: Optional[Callable[[], None]] = None):
        self._on_remove = on_remove
        self.active = True

    def remove(self) -> None:
        if not self.active:
            return
        self.active = False
        if self._on_remove is not None:
            self._on_remove()
            self._on_remove = None


class SignalStream(Generic[T]):
    """Observable holding the latest value of one signal source.

    Example:
        >>> stream = SignalStream("gps")
        >>> seen = []
        >>> sub = stream.subscribe(seen.append)
        >>> stream.publish(12.5)
        >>> stream.latest, seen
        (12.5, [12.5])
        >>> sub.remove()
    """

    def __init__(self, name: str):
        self.name = name
        self.latest: Optional[T] = None
        self._observers: List[Callable[[T], None]] = []

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        self._observers.append(callback)

        def _remove() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return Subscription(_remove)

    def publish(self, value: T) -> None:
        self.latest = value
        # Copy: an observer may unsubscribe itself while being notified.
        for callback in list(self._observers):
            callback(value)

    def clear(self) -> None:
        self.latest = None

    @property
    def observer_count(self) -> int:
        return len(self._observers)
