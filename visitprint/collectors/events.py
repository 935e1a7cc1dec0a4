"""
In-process event target.

Stands in for the document: collectors subscribe handlers by event type and
whoever produces input (a browser bridge, a replay, a test) dispatches to
them. Handlers run synchronously on the dispatching thread.
"""

import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from loguru import logger


Listener = Callable[[Any], None]


@dataclass
class WheelEvent:
    """Scroll wheel input"""
    delta_x: float = 0.0
    delta_y: float = 0.0
    delta_mode: int = 0  # 0 = pixel, 1 = line, 2 = page


@dataclass
class MoveEvent:
    """Relative pointer movement"""
    movement_x: float = 0.0
    movement_y: float = 0.0


class EventTarget:
    """Thread-safe listener registry with synchronous dispatch."""

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)
        self._lock = threading.Lock()

    def add_listener(self, event_type: str, listener: Listener) -> None:
        with self._lock:
            if listener not in self._listeners[event_type]:
                self._listeners[event_type].append(listener)

    def remove_listener(self, event_type: str, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners.get(event_type, []):
                self._listeners[event_type].remove(listener)

    def listener_count(self, event_type: str = None) -> int:
        with self._lock:
            if event_type is not None:
                return len(self._listeners.get(event_type, []))
            return sum(len(listeners) for listeners in self._listeners.values())

    def dispatch(self, event_type: str, event: Any) -> int:
        """
        Deliver an event to every listener of its type.

        Returns:
            Number of listeners invoked
        """
        with self._lock:
            listeners = list(self._listeners.get(event_type, []))

        for listener in listeners:
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Listener for '{event_type}' raised: {e}")

        return len(listeners)
