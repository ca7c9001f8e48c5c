"""
Event system for the hand tracking pipeline.
Provides synchronous observer lists so consumers never poll the pipeline.
"""

import enum
import logging
from typing import Dict, List, Callable

logger = logging.getLogger(__name__)


class EventType(enum.Enum):
    """Event types emitted by the hand tracking pipeline."""
    # Hand state events
    STATE_CHANGED = "state_changed"
    TRACKING_LOST = "tracking_lost"
    TRACKING_RESUMED = "tracking_resumed"

    # Combo events
    COMBO_DETECTED = "combo_detected"
    COMBO_COMPLETED = "combo_completed"
    COMBO_FAILED = "combo_failed"

    # Calibration events
    CALIBRATION_STARTED = "calibration_started"
    CALIBRATION_COMPLETED = "calibration_completed"
    CALIBRATION_RESET = "calibration_reset"


class EventEmitter:
    """
    Implements an observer pattern for event handling.
    Callbacks run synchronously, in registration order, on the emitting thread.
    """

    def __init__(self):
        """Initialize an event emitter."""
        self._event_callbacks: Dict[EventType, List[Callable]] = {
            event: [] for event in EventType
        }

    def on(self, event_type: EventType, callback: Callable) -> None:
        """
        Register a callback for an event.

        Args:
            event_type: Event type
            callback: Function to call when the event is emitted
        """
        if event_type not in self._event_callbacks:
            self._event_callbacks[event_type] = []

        self._event_callbacks[event_type].append(callback)

    def off(self, event_type: EventType, callback: Callable) -> None:
        """
        Remove a callback for an event.

        Args:
            event_type: Event type
            callback: Function to remove
        """
        if event_type in self._event_callbacks and callback in self._event_callbacks[event_type]:
            self._event_callbacks[event_type].remove(callback)

    def has_listeners(self, event_type: EventType) -> bool:
        """Return True if at least one callback is registered for the event."""
        return bool(self._event_callbacks.get(event_type))

    def emit(self, event_type: EventType, *args, **kwargs) -> None:
        """
        Emit an event, executing all registered callbacks.

        Args:
            event_type: Event type
            *args, **kwargs: Arguments passed to callbacks
        """
        if event_type not in self._event_callbacks:
            return

        for callback in list(self._event_callbacks[event_type]):
            try:
                callback(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in callback for event {event_type}: {e}")
