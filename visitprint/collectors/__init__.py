"""
VisitPrint Signal Collectors

- collector: capability interface (name, description, collect)
- timed_collector: immediate phase + bounded observation window with early exit
- pointer_collector: wheel and pointer movement characteristics
- ultrasonic_beacon: audio side-channel pairing between nearby contexts
"""

from .collector import Collector, StaticCollector, UnimplementedCollector, CollectorNotImplemented
from .events import EventTarget, WheelEvent, MoveEvent
from .timed_collector import TimedCollector, CollectorState, ObservationWindow, BoundedWait
from .pointer_collector import PointerCollector, PointerCapabilities, DEFAULT_POINTER_THRESHOLDS
from .ultrasonic_beacon import (
    UltrasonicBeacon,
    PairingResult,
    ToneSink,
    ToneSource,
    ToneSlot,
    ToneDemodulator,
    LoopbackChannel,
    code_to_bits,
    bits_to_code,
    build_transmission
)

__all__ = [
    'Collector',
    'StaticCollector',
    'UnimplementedCollector',
    'CollectorNotImplemented',
    'EventTarget',
    'WheelEvent',
    'MoveEvent',
    'TimedCollector',
    'CollectorState',
    'ObservationWindow',
    'BoundedWait',
    'PointerCollector',
    'PointerCapabilities',
    'DEFAULT_POINTER_THRESHOLDS',
    'UltrasonicBeacon',
    'PairingResult',
    'ToneSink',
    'ToneSource',
    'ToneSlot',
    'ToneDemodulator',
    'LoopbackChannel',
    'code_to_bits',
    'bits_to_code',
    'build_transmission'
]
