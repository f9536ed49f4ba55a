"""Change notification channel.

This module holds the listener registry the store broadcasts
``change`` events through.
"""

from __future__ import annotations

from core.constants import CHANGE_EVENT_NAME
from core.types import ChangeListener


class ChangeBroadcaster:
    """Registry of listeners for the ``change`` event."""

    event_name = CHANGE_EVENT_NAME

    def __init__(self) -> None:
        self._listeners: list[ChangeListener] = []

    def subscribe(self, listener: ChangeListener) -> ChangeListener:
        """Register a listener and return it for later unsubscription."""
        self._listeners.append(listener)
        return listener

    def unsubscribe(self, listener: ChangeListener) -> bool:
        """Remove the first registration of a listener.

        Args:
            listener: Previously subscribed callable.

        Returns:
            Whether the listener was registered.
        """
        try:
            self._listeners.remove(listener)
        except ValueError:
            return False
        return True

    def emit(self, path: str) -> None:
        """Call every listener with the changed path, in subscription order."""
        for listener in list(self._listeners):
            listener(path)

    def listener_count(self) -> int:
        """Return how many listeners are registered."""
        return len(self._listeners)
