"""
Typed event bus for decoupled communication.

Uses Enums for event types to prevent magic strings. The engine publishes
a NarrativeEvent for every state transition a listener (an audio layer, an
achievement tracker, a debug overlay) might care about.

Usage:
    bus = EventBus()
    bus.subscribe(NarrativeEvent.DIALOGUE_STARTED, on_dialogue_started)
    bus.publish(NarrativeEvent.DIALOGUE_STARTED, dialogue_id="bartender")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable


logger = logging.getLogger(__name__)


class NarrativeEvent(Enum):
    """Events published by the engine."""
    # Lifecycle
    GAME_STARTED = auto()
    GAME_LOADED = auto()
    GAME_SAVED = auto()

    # Dialogue
    DIALOGUE_STARTED = auto()
    DIALOGUE_ENDED = auto()
    NODE_ENTERED = auto()
    CHOICE_SELECTED = auto()

    # World
    LOCATION_CHANGED = auto()
    ITEM_TAKEN = auto()
    INTERLUDE_TRIGGERED = auto()

    # Player
    NOTE_WRITTEN = auto()
    NOTE_DELETED = auto()
    LOCALE_CHANGED = auto()


@dataclass(frozen=True)
class Event:
    """A published event: its type and the keyword data it was sent with."""
    type: NarrativeEvent
    data: dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def __getitem__(self, key: str) -> Any:
        return self.data[key]


EventHandler = Callable[[Event], None]


class EventBus:
    """
    Publish/subscribe for engine events.

    Handlers are held strongly and called in subscription order. An event
    published from inside a handler is queued and delivered after the
    current one, so listeners always see events in the order they happened.
    A failing handler is logged and the remaining handlers still run.
    """

    def __init__(self):
        self._handlers: dict[NarrativeEvent, list[EventHandler]] = {}
        self._queue: list[Event] = []
        self._dispatching = False

    def subscribe(self, event_type: NarrativeEvent, handler: EventHandler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)

    def unsubscribe(self, event_type: NarrativeEvent, handler: EventHandler) -> None:
        handlers = self._handlers.get(event_type)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def publish(self, event_type: NarrativeEvent, **data: Any) -> Event:
        event = Event(type=event_type, data=data)
        self._queue.append(event)
        if not self._dispatching:
            self._drain()
        return event

    def clear(self, event_type: NarrativeEvent | None = None) -> None:
        """Clear handlers for one event type, or all of them."""
        if event_type is None:
            self._handlers.clear()
        else:
            self._handlers.pop(event_type, None)

    def _drain(self) -> None:
        self._dispatching = True
        try:
            while self._queue:
                event = self._queue.pop(0)
                for handler in list(self._handlers.get(event.type, ())):
                    try:
                        handler(event)
                    except Exception:
                        logger.exception(f"Error in event handler for {event.type}")
        finally:
            self._dispatching = False
