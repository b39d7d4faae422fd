"""Decision lifecycle event bus.

Publishes structured events to subscribers registered per event name.
Publication is fire-and-forget: every listener call runs in its own task,
so a slow or failing listener never blocks the engine or other listeners.
Tests and shutdown code can await ``drain()`` to let deliveries settle.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Callable
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class EventType(StrEnum):
    """Lifecycle notifications emitted by the decision engine."""

    DECISION_REQUESTED = "decision:requested"
    VOTE_REQUEST = "decision:vote_request"
    VOTE_SUBMITTED = "vote:submitted"
    DECISION_MADE = "decision:made"
    DECISION_RESOLVED = "decision:resolved"
    DECISION_TIMEOUT = "decision:timeout"


class DecisionEvent(BaseModel):
    """A single lifecycle event."""

    type: EventType = Field(description="Event type")
    timestamp: float = Field(
        default_factory=time.time,
        description="Unix timestamp when the event occurred",
    )
    data: dict[str, Any] = Field(
        default_factory=dict,
        description="Event payload, varies by event type",
    )


# Type alias for event listener callbacks
EventListener = Callable[[DecisionEvent], Any]


class EventBus:
    """Broadcasts decision events to listeners subscribed by event type.

    Listeners can be sync or async callables. Listener exceptions are
    logged and never propagate to the publisher.
    """

    def __init__(self, keep_history: int = 1000) -> None:
        self._listeners: dict[EventType, list[EventListener]] = {}
        self._history: list[DecisionEvent] = []
        self._keep_history = keep_history
        self._inflight: set[asyncio.Task[None]] = set()

    @property
    def history(self) -> list[DecisionEvent]:
        """Most recent events published, oldest first."""
        return list(self._history)

    def on(self, event_type: EventType | str, listener: EventListener) -> None:
        """Subscribe ``listener`` to one event type.

        Raises:
            ValueError: If the event name is unknown.
        """
        self._listeners.setdefault(EventType(event_type), []).append(listener)

    def off(self, event_type: EventType | str, listener: EventListener) -> None:
        """Remove a previously registered listener. Unknown listeners are ignored."""
        key = EventType(event_type)
        self._listeners[key] = [
            ln for ln in self._listeners.get(key, []) if ln is not listener
        ]

    def listener_count(self, event_type: EventType | str) -> int:
        return len(self._listeners.get(EventType(event_type), []))

    def publish(self, event_type: EventType, **data: Any) -> DecisionEvent:
        """Publish an event without waiting for listeners.

        Must be called from within a running event loop. Each listener
        is delivered in its own task.
        """
        event = self._record(event_type, data)
        listeners = list(self._listeners.get(event_type, []))
        if not listeners:
            return event

        loop = asyncio.get_running_loop()
        for listener in listeners:
            task = loop.create_task(self._deliver(listener, event))
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)
        return event

    async def emit(self, event_type: EventType, **data: Any) -> DecisionEvent:
        """Publish an event and wait until every listener has finished."""
        event = self._record(event_type, data)
        for listener in list(self._listeners.get(event_type, [])):
            await self._deliver(listener, event)
        return event

    async def drain(self) -> None:
        """Wait for all in-flight deliveries started by ``publish``."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    def clear(self) -> None:
        """Drop all listeners and cancel deliveries still in flight."""
        self._listeners.clear()
        for task in list(self._inflight):
            task.cancel()
        self._inflight.clear()

    def _record(self, event_type: EventType, data: dict[str, Any]) -> DecisionEvent:
        event = DecisionEvent(type=event_type, data=data)
        self._history.append(event)
        if len(self._history) > self._keep_history:
            del self._history[: len(self._history) - self._keep_history]
        return event

    async def _deliver(self, listener: EventListener, event: DecisionEvent) -> None:
        try:
            result = listener(event)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Event listener error for %s", event.type)
