"""In-process fan-out of match events to side-effect collaborators."""

import logging
import threading
from typing import Callable

from map_veto.models.events import MatchEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[MatchEvent], None]


class EventBus:
    """Publishes events to every subscribed handler.

    Delivery is fire-and-forget: a handler that raises is logged and the
    remaining handlers still run.
    """

    def __init__(self):
        self._handlers: list[EventHandler] = []
        self._lock = threading.Lock()

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        """Register a handler; returns a callable that unsubscribes it."""
        with self._lock:
            self._handlers.append(handler)

        def unsubscribe() -> None:
            with self._lock:
                if handler in self._handlers:
                    self._handlers.remove(handler)

        return unsubscribe

    def publish(self, event: MatchEvent) -> None:
        with self._lock:
            handlers = list(self._handlers)
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Event handler failed for {event.type} in room {event.room_id}: {e}")

    def publish_all(self, events: list[MatchEvent]) -> None:
        for event in events:
            self.publish(event)
