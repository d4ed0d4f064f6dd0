"""
In-process telemetry event bus.

Fire-and-forget: emit() never raises and never blocks on listeners
beyond calling them. Listener failures are logged and swallowed.
"""
from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional

logger = logging.getLogger(__name__)

ACTION_SELECTED = "action-selected"
FEEDBACK_RECORDED = "feedback-recorded"

Listener = Callable[[Dict[str, Any], "Event"], None]


@dataclass
class Event:
    """A single emitted event."""
    type: str
    timestamp: float
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "timestamp": self.timestamp, **self.data}


class EventBus:
    """
    Publish/subscribe bus with bounded history.

    Example:
        >>> bus = EventBus()
        >>> unsubscribe = bus.on("action-selected", lambda data, event: print(data["action"]))
        >>> bus.emit("action-selected", {"action": 3})
        3
    """

    def __init__(self, max_history: int = 1000):
        self.max_history = max(1, max_history)
        self._listeners: Dict[str, List[Listener]] = {}
        self._history: Deque[Event] = deque(maxlen=self.max_history)
        self._lock = threading.Lock()

    def emit(self, event_type: str, data: Optional[Dict[str, Any]] = None) -> Event:
        event = Event(type=event_type, timestamp=time.time(), data=dict(data or {}))
        with self._lock:
            self._history.append(event)
            listeners = list(self._listeners.get(event_type, ()))

        for callback in listeners:
            try:
                callback(event.data, event)
            except Exception as e:
                logger.error(f"[EventBus] Error in listener for {event_type}: {e}")

        return event

    def on(self, event_type: str, callback: Listener) -> Callable[[], None]:
        """Subscribe. Returns an unsubscribe function."""
        with self._lock:
            self._listeners.setdefault(event_type, []).append(callback)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._listeners.get(event_type, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return unsubscribe

    def once(self, event_type: str, callback: Listener) -> Callable[[], None]:
        """Subscribe for a single delivery."""
        unsubscribe: Callable[[], None]

        def wrapper(data: Dict[str, Any], event: Event) -> None:
            unsubscribe()
            callback(data, event)

        unsubscribe = self.on(event_type, wrapper)
        return unsubscribe

    def off(self, event_type: str) -> None:
        """Remove all listeners for an event type."""
        with self._lock:
            self._listeners.pop(event_type, None)

    def get_history(self, event_type: Optional[str] = None, limit: int = 100) -> List[Event]:
        with self._lock:
            history = list(self._history)
        if event_type:
            history = [e for e in history if e.type == event_type]
        return history[-limit:] if limit > 0 else []

    def clear_history(self) -> None:
        with self._lock:
            self._history.clear()

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            event_types: Dict[str, int] = {}
            for event in self._history:
                event_types[event.type] = event_types.get(event.type, 0) + 1
            return {
                "total_events": len(self._history),
                "event_types": event_types,
                "listeners": {t: len(cbs) for t, cbs in self._listeners.items()},
            }
