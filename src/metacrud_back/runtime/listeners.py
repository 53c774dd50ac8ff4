"""
Entity listener fan-out.

Listeners are held weakly: registering does not keep a subscriber alive,
and a collected subscriber silently drops out. Notification is
best-effort; an exception from one listener is logged here and never
reaches the caller or the remaining listeners.
"""

from __future__ import annotations

import logging
import weakref
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class EntityListener(Protocol):
    def on_entity_saved(self, instance: Any) -> None: ...

    def on_entity_deleted(self, instance: Any) -> None: ...


class ListenerSet:
    """Unordered, weakly referenced set of entity listeners."""

    def __init__(self, owner: str = "") -> None:
        self.owner = owner
        self._listeners: weakref.WeakSet[EntityListener] = weakref.WeakSet()

    def add(self, listener: EntityListener) -> None:
        self._listeners.add(listener)

    def discard(self, listener: EntityListener) -> None:
        self._listeners.discard(listener)

    def __len__(self) -> int:
        return len(self._listeners)

    def __contains__(self, listener: object) -> bool:
        return listener in self._listeners

    def notify_saved(self, instance: Any) -> int:
        return self._notify("saved", instance)

    def notify_deleted(self, instance: Any) -> int:
        return self._notify("deleted", instance)

    def _notify(self, event: str, instance: Any) -> int:
        """Invoke every listener; returns how many raised."""
        failures = 0
        # Snapshot: a listener may unsubscribe itself while being notified
        for listener in list(self._listeners):
            callback = getattr(listener, f"on_entity_{event}", None)
            if callback is None:
                continue
            try:
                callback(instance)
            except Exception:
                failures += 1
                logger.warning(
                    "Listener %s failed on %s event for %s",
                    type(listener).__name__,
                    event,
                    self.owner or type(instance).__name__,
                    exc_info=True,
                )
        return failures
