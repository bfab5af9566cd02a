# remote_explorer/core/signals.py
"""
Event bus for explorer state changes.

This module provides a decoupled event system using GObject signals. Each
signal carries exactly one payload object from ``core.events``; the bus
refuses anything else, so the topic name and the payload shape cannot drift.

Usage:
    signals = ExplorerSignals()
    signals.subscribe(DirectoryListingReady, self._on_listing_ready)
    signals.publish(DirectoryListingReady(session_id, path, entries, crumbs))

Unlike a process-wide bus, an instance is created by the composition root
and handed to every component that publishes or listens.
"""

from typing import Any, Callable, Type

from gi.repository import GObject

from ..utils.logger import get_logger
from .events import EVENT_TYPES

_SIGNAL_SIGNATURE = (GObject.SignalFlags.RUN_FIRST, None, (object,))


class ExplorerSignals(GObject.Object):
    """
    Typed signal bus for the explorer core.

    Handlers receive the payload only; the emitting bus is dropped so view
    adapters can subscribe plain callables.
    """

    __gsignals__ = {topic: _SIGNAL_SIGNATURE for topic in EVENT_TYPES}

    def __init__(self):
        super().__init__()
        self.logger = get_logger("remote_explorer.core.signals")

    def publish(self, event: Any) -> None:
        """Emit ``event`` on its topic.

        Raises:
            TypeError: if ``event`` is not one of the registered payload types.
        """
        topic = getattr(type(event), "TOPIC", None)
        if topic not in EVENT_TYPES or not isinstance(event, EVENT_TYPES[topic]):
            raise TypeError(f"Unsupported explorer event: {type(event).__name__}")
        self.logger.debug(f"Publishing {topic}")
        self.emit(topic, event)

    def subscribe(self, event_type: Type, handler: Callable[[Any], None]) -> int:
        """Connect ``handler`` to the topic of ``event_type``; returns the handler id."""
        topic = getattr(event_type, "TOPIC", None)
        if EVENT_TYPES.get(topic) is not event_type:
            raise TypeError(f"Unsupported explorer event type: {event_type!r}")
        return self.connect(topic, lambda _bus, event: handler(event))

    def unsubscribe(self, handler_id: int) -> None:
        self.disconnect(handler_id)
