"""
Pointer/Motion Collector

Immediate: pointer type, hover support, touch points.
Observed: wheel deltas and pointer movement steps.

Aggregation:
- wheelDeltaY: most common nonzero |deltaY| (first seen wins ties)
- wheelDeltaMode: last observed delta mode
- smoothScroll: any fractional |deltaY| (inertial/precision scrolling)
- movementMinStep / movementMedianStep: min / median of nonzero |dx|, |dy|
- scrollSampleCount / moveSampleCount: accepted events per kind

Events with zero magnitude in every dimension are ignored entirely.
"""

import statistics
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .events import EventTarget, MoveEvent, WheelEvent
from .timed_collector import TimedCollector, DEFAULT_OBSERVE_TIMEOUT_MS


# Early-exit thresholds per sample kind
DEFAULT_POINTER_THRESHOLDS = {
    'move': 50,
    'scroll': 5
}


@dataclass
class PointerCapabilities:
    """Media-query style pointer capabilities of the context"""
    fine_pointer: bool = False
    coarse_pointer: bool = False
    hover: bool = False
    max_touch_points: int = 0

    @property
    def pointer_type(self) -> str:
        if self.fine_pointer:
            return 'fine'
        if self.coarse_pointer:
            return 'coarse'
        return 'none'


class PointerCollector(TimedCollector):
    """Mouse and wheel input characteristics."""

    def __init__(self, target: EventTarget, capabilities: Optional[PointerCapabilities] = None,
                 timeout_ms: int = DEFAULT_OBSERVE_TIMEOUT_MS,
                 thresholds: Optional[Dict[str, int]] = None):
        super().__init__(
            'mouse',
            'Mouse input characteristics',
            ['pointerType', 'wheelDeltaY', 'movementMinStep'],
            timeout_ms=timeout_ms,
            thresholds=DEFAULT_POINTER_THRESHOLDS if thresholds is None else thresholds
        )
        self.target = target
        self.capabilities = capabilities or PointerCapabilities()

        self._wheel_deltas: List[float] = []
        self._movement_steps: List[float] = []
        self._move_samples = 0
        self._has_fractional_delta = False
        self._wheel_delta_mode: Optional[int] = None

    @classmethod
    def from_config(cls, config: dict, target: EventTarget,
                    capabilities: Optional[PointerCapabilities] = None) -> "PointerCollector":
        observation_config = config.get("observation", {})
        return cls(
            target,
            capabilities,
            timeout_ms=observation_config.get("timeout_ms", DEFAULT_OBSERVE_TIMEOUT_MS),
            thresholds=observation_config.get("thresholds", DEFAULT_POINTER_THRESHOLDS)
        )

    def _collect_immediate(self) -> Dict[str, Any]:
        return {
            'pointerType': self.capabilities.pointer_type,
            'hoverSupport': self.capabilities.hover,
            'maxTouchPoints': self.capabilities.max_touch_points,
            'observing': True
        }

    def _attach(self) -> None:
        self.target.add_listener('wheel', self._on_wheel)
        self.target.add_listener('mousemove', self._on_mouse_move)

    def _detach(self) -> None:
        self.target.remove_listener('wheel', self._on_wheel)
        self.target.remove_listener('mousemove', self._on_mouse_move)

    def _on_wheel(self, event: WheelEvent) -> None:
        dy = abs(event.delta_y)
        if dy == 0:
            return

        def record():
            self._wheel_delta_mode = event.delta_mode
            self._wheel_deltas.append(dy)
            if not float(dy).is_integer():
                self._has_fractional_delta = True

        self._accept_sample(record)

    def _on_mouse_move(self, event: MoveEvent) -> None:
        steps = [abs(v) for v in (event.movement_x, event.movement_y) if v != 0]
        if not steps:
            return

        def record():
            self._movement_steps.extend(steps)
            self._move_samples += 1

        self._accept_sample(record)

    def _sample_counts(self) -> Dict[str, int]:
        return {
            'move': self._move_samples,
            'scroll': len(self._wheel_deltas)
        }

    def _build_result(self) -> Dict[str, Any]:
        steps = self._movement_steps
        return {
            'wheelDeltaY': _most_common(self._wheel_deltas),
            'wheelDeltaMode': self._wheel_delta_mode,
            'smoothScroll': self._has_fractional_delta if self._wheel_deltas else None,
            'movementMinStep': min(steps) if steps else None,
            'movementMedianStep': statistics.median(steps) if steps else None,
            'scrollSampleCount': len(self._wheel_deltas),
            'moveSampleCount': self._move_samples
        }


def _most_common(values: List[float]) -> Optional[float]:
    if not values:
        return None
    return Counter(values).most_common(1)[0][0]
