"""
Typed event bus for audio notifications.

Event types are Enums so subscribers never match on magic strings.
The bus is the observer list behind the load/error/cache callbacks:
events published while a handler is running are queued and delivered
once the current dispatch finishes, so every load and error event
reaches its subscribers even when handlers call back into the service.

Usage:
    bus = EventBus()
    bus.subscribe(AudioEvent.AUDIO_LOADED, on_loaded)
    bus.publish(AudioEvent.AUDIO_LOADED, asset_id="ui-click")
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable
from weakref import WeakMethod, ref

logger = logging.getLogger(__name__)


class AudioEvent(Enum):
    """Audio subsystem events."""
    # Loading / cache
    AUDIO_LOADED = auto()
    AUDIO_ERROR = auto()
    CACHE_UPDATED = auto()

    # Playback lifecycle
    PLAYBACK_STARTED = auto()
    PLAYBACK_STOPPED = auto()
    PLAYBACK_FINISHED = auto()

    # Mixing / spatial
    LAYER_VOLUME_CHANGED = auto()
    ENVIRONMENT_CHANGED = auto()


@dataclass
class Event:
    """
    Event data container.

    Attributes:
        type: The event type (Enum member)
        data: Event payload (asset_id, error, progress, ...)
        consumed: Whether a handler stopped propagation
    """
    type: Enum
    data: dict[str, Any] = field(default_factory=dict)
    consumed: bool = False

    def consume(self) -> None:
        """Stop delivery to lower priority handlers."""
        self.consumed = True

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def __getitem__(self, key: str) -> Any:
        return self.data[key]


EventHandler = Callable[[Event], None]


@dataclass(eq=False)
class _Subscription:
    priority: int
    handler_ref: Any
    one_shot: bool = False
    weak: bool = True

    def resolve(self) -> EventHandler | None:
        """Return the live handler, or None if a weak target was collected."""
        if not self.weak:
            return self.handler_ref
        return self.handler_ref()


class EventBus:
    """
    Publish/subscribe bus.

    Features:
    - Enum-typed events
    - Priority ordering (higher first, FIFO within a priority)
    - Optional weak references for bound methods and functions
    - One-shot handlers
    - Consumption stops propagation
    - Re-entrant publishing is queued, never recursive
    """

    def __init__(self):
        self._subscriptions: dict[Enum, list[_Subscription]] = {}
        self._pending: deque[Event] = deque()
        self._dispatching = False

    def subscribe(
        self,
        event_type: Enum,
        handler: EventHandler,
        priority: int = 0,
        one_shot: bool = False,
        weak: bool = True,
    ) -> None:
        """
        Subscribe to an event type.

        Args:
            event_type: The event type to listen for
            handler: Callback taking the Event
            priority: Higher priority handlers run first
            one_shot: Remove the handler after its first call
            weak: Hold the handler weakly (lambdas and closures need weak=False)
        """
        if weak:
            handler_ref = WeakMethod(handler) if hasattr(handler, "__self__") else ref(handler)
        else:
            handler_ref = handler

        subscription = _Subscription(priority, handler_ref, one_shot, weak)
        subs = self._subscriptions.setdefault(event_type, [])

        index = len(subs)
        for i, existing in enumerate(subs):
            if priority > existing.priority:
                index = i
                break
        subs.insert(index, subscription)

    def unsubscribe(self, event_type: Enum, handler: EventHandler) -> None:
        """Remove every subscription of handler to event_type."""
        subs = self._subscriptions.get(event_type)
        if not subs:
            return
        self._subscriptions[event_type] = [
            s for s in subs if s.resolve() is not None and s.resolve() != handler
        ]

    def has_subscribers(self, event_type: Enum) -> bool:
        return any(s.resolve() is not None for s in self._subscriptions.get(event_type, []))

    def publish(self, event_type: Enum, **data: Any) -> Event:
        """
        Publish an event.

        Returns:
            The Event (delivery may be deferred if called from a handler)
        """
        event = Event(type=event_type, data=data)
        self.publish_event(event)
        return event

    def publish_event(self, event: Event) -> None:
        """Publish a pre-built event."""
        if self._dispatching:
            self._pending.append(event)
            return

        self._dispatching = True
        try:
            self._dispatch(event)
            while self._pending:
                self._dispatch(self._pending.popleft())
        finally:
            self._dispatching = False

    def clear(self, event_type: Enum | None = None) -> None:
        """Drop handlers for one event type, or all of them."""
        if event_type is None:
            self._subscriptions.clear()
        else:
            self._subscriptions.pop(event_type, None)

    def _dispatch(self, event: Event) -> None:
        subs = self._subscriptions.get(event.type)
        if not subs:
            return

        dead: list[_Subscription] = []
        for subscription in list(subs):
            handler = subscription.resolve()
            if handler is None:
                dead.append(subscription)
                continue

            try:
                handler(event)
            except Exception:
                logger.exception(f"Error in event handler for {event.type}")

            if subscription.one_shot:
                dead.append(subscription)
            if event.consumed:
                break

        if dead and event.type in self._subscriptions:
            # Re-read the list: handlers may have (un)subscribed during dispatch
            self._subscriptions[event.type] = [
                s for s in self._subscriptions[event.type] if s not in dead
            ]
