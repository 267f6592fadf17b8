"""
Lightweight event bus for decoupled inter-module communication.

Game components publish what happened (a jump, a hit, a target load)
without knowing who renders, logs or scores it.

Usage:
    bus = EventBus()
    bus.subscribe(Events.OBJECT_HIT, my_handler)
    bus.emit(Events.OBJECT_HIT, kind="block", points=10)
"""

import time
import logging
import threading
from collections import defaultdict
from typing import Callable

logger = logging.getLogger(__name__)


class EventBus:
    """Thread-safe publish/subscribe event bus.

    One bus per session controller. Listeners run synchronously in
    priority order; a failing listener is logged and never stops the
    frame loop.
    """

    def __init__(self, max_history: int = 100):
        self._listeners = defaultdict(list)  # event_name -> [(priority, callback)]
        self._lock = threading.Lock()
        self._event_history = []
        self._max_history = max_history
        self._enabled = True

    def subscribe(self, event_name: str, callback: Callable, priority: int = 0):
        """Register a listener for an event.

        Args:
            event_name: Event to listen for
            callback: Function to call. Receives **kwargs from emit().
            priority: Higher priority callbacks run first (default 0)
        """
        with self._lock:
            self._listeners[event_name].append((priority, callback))
            self._listeners[event_name].sort(key=lambda x: -x[0])
        logger.debug("Subscribed to '%s': %s (priority=%d)",
                     event_name, getattr(callback, "__name__", repr(callback)), priority)

    def unsubscribe(self, event_name: str, callback: Callable):
        """Remove a listener for an event."""
        with self._lock:
            self._listeners[event_name] = [
                (p, cb) for p, cb in self._listeners[event_name] if cb is not callback
            ]

    def emit(self, event_name: str, **kwargs):
        """Emit an event to all registered listeners."""
        if not self._enabled:
            return

        with self._lock:
            listeners = list(self._listeners.get(event_name, []))
            self._event_history.append({
                "event": event_name,
                "time": time.time(),
                "data_keys": list(kwargs.keys()),
            })
            if len(self._event_history) > self._max_history:
                self._event_history = self._event_history[-self._max_history:]

        for priority, callback in listeners:
            try:
                callback(**kwargs)
            except Exception as e:
                logger.error("Event handler error [%s -> %s]: %s",
                             event_name, getattr(callback, "__name__", repr(callback)), e)

    def clear(self, event_name: str = None):
        """Remove all listeners, optionally for a specific event."""
        with self._lock:
            if event_name:
                self._listeners.pop(event_name, None)
            else:
                self._listeners.clear()

    @property
    def listener_count(self) -> int:
        with self._lock:
            return sum(len(cbs) for cbs in self._listeners.values())

    def get_history(self, last_n: int = 10) -> list:
        """Get recent event history."""
        with self._lock:
            return self._event_history[-last_n:]

    def count(self, event_name: str) -> int:
        """Number of times an event appears in the retained history."""
        with self._lock:
            return sum(1 for e in self._event_history if e["event"] == event_name)


# =============================================================================
# Standard Event Names (constants to avoid typos)
# =============================================================================

class Events:
    """Standard event names used throughout the game engine."""

    # Session lifecycle
    SESSION_STARTED = "session_started"
    SESSION_ENDED = "session_ended"
    TIMER_TICK = "timer_tick"

    # Motion
    JUMP_DETECTED = "jump_detected"
    ACTION_DETECTED = "action_detected"

    # Game objects
    OBJECT_SPAWNED = "object_spawned"
    OBJECT_EVICTED = "object_evicted"
    OBJECT_HIT = "object_hit"
    SCORE_CHANGED = "score_changed"

    # Charades
    TARGET_LOADED = "target_loaded"
    TARGET_FAILED = "target_failed"
    SIMILARITY_UPDATED = "similarity_updated"

    # Errors
    CAMERA_ERROR = "camera_error"
    DETECTION_ERROR = "detection_error"
