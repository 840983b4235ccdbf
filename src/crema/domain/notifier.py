"""Broadcast of data changes to interested views."""

from collections.abc import Callable
from typing import Any

from crema.core.env import LOGGER
from crema.domain.models import ChangeType

Subscriber = Callable[[ChangeType, Any], None]


class DataChangeNotifier:
    """Fan-out notifier. A failing subscriber never affects the caller."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register *callback*; returns a function that unsubscribes it."""
        self._subscribers.append(callback)
        return lambda: self._subscribers.remove(callback)

    def notify(self, change_type: ChangeType, entity: Any = None) -> None:
        LOGGER.debug(
            "Notifying data change: %s, entity: %s",
            change_type.name,
            type(entity).__name__ if entity is not None else "None",
        )
        for callback in list(self._subscribers):
            try:
                callback(change_type, entity)
            except Exception:
                LOGGER.exception("Error notifying data change: %s", change_type.name)
