#!/usr/bin/env python3
"""
VisitPrint Ultrasonic Pairing Beacon
====================================

Correlates two contexts in physical proximity by exchanging a 16-bit
pairing code as near-ultrasonic tones, with no network round trip.

Encoding (frequency-shift keyed):
- code -> 16 bits, most significant first
- each repeat: one marker slot (20 kHz), then 4 data slots; in data slot s,
  tone FREQUENCIES[i] is on when bit s*4+i is 1
- repeats are separated by a short silent gap

Decoding:
- level frames sampled every 50 ms
- a frame starts when the marker tone stops; each data slot spans 4 samples
- a bit is 1 when its tone is above the level threshold in >= 2 samples
- confidence = frames agreeing on the same code / repeats sent

Audio I/O sits behind ToneSink / ToneSource so the protocol runs without
real hardware.

Author: Team VisitPrint
"""

import threading
from abc import ABC, abstractmethod
from collections import Counter, deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, List, Optional, Sequence, Tuple, Union

from loguru import logger

from .collector import Collector
from .timed_collector import ObservationWindow, BoundedWait


# Data tone per bit column (Hz)
FREQUENCIES = [18000, 18500, 19000, 19500]

# Frame start marker (Hz)
MARKER_FREQUENCY = 20000

SLOT_DURATION_MS = 200
SAMPLE_INTERVAL_MS = 50
SAMPLES_PER_SLOT = SLOT_DURATION_MS // SAMPLE_INTERVAL_MS
DATA_SLOTS = 4
REPEAT_COUNT = 3
REPEAT_GAP_MS = 100

# Byte magnitude (0-255) a tone must exceed to count as present
LEVEL_THRESHOLD = 150

# Samples within a slot needed to call a bit 1
MIN_BIT_DETECTIONS = 2

TONE_GAIN = 0.15

# Sample kind counted against repeat_count in the receive window
AGREEMENT_SAMPLE_KIND = "agreeingFrames"

CODE_BITS = 16
MAX_CODE = (1 << CODE_BITS) - 1


def code_to_bits(code: Union[int, str]) -> List[int]:
    """
    Decompose a pairing code into 16 bits, most significant first.

    Raises:
        ValueError: code is not an integer in [0, 65535]
    """
    value = int(code)
    if not 0 <= value <= MAX_CODE:
        raise ValueError(f"Pairing code out of range: {code!r}")
    return [(value >> shift) & 1 for shift in range(CODE_BITS - 1, -1, -1)]


def bits_to_code(bits: Sequence[int]) -> int:
    """Inverse of code_to_bits."""
    if len(bits) != CODE_BITS:
        raise ValueError(f"Expected {CODE_BITS} bits, got {len(bits)}")
    value = 0
    for bit in bits:
        value = (value << 1) | (1 if bit else 0)
    return value


@dataclass(frozen=True)
class ToneSlot:
    """Tones played together for one slot (empty = silence)"""
    frequencies: Tuple[int, ...]
    duration_ms: int


def build_transmission(code: Union[int, str], repeat_count: int = REPEAT_COUNT) -> List[ToneSlot]:
    """
    Deterministic tone schedule for one full transmission.

    Args:
        code: Pairing code
        repeat_count: Number of framed repeats

    Returns:
        Ordered list of tone slots
    """
    bits = code_to_bits(code)
    schedule = []

    for repeat in range(repeat_count):
        schedule.append(ToneSlot((MARKER_FREQUENCY,), SLOT_DURATION_MS))
        for slot in range(DATA_SLOTS):
            tones = tuple(
                frequency for column, frequency in enumerate(FREQUENCIES)
                if bits[slot * len(FREQUENCIES) + column]
            )
            schedule.append(ToneSlot(tones, SLOT_DURATION_MS))
        if repeat < repeat_count - 1:
            schedule.append(ToneSlot((), REPEAT_GAP_MS))

    return schedule


class ToneDemodulator:
    """Recovers framed pairing codes from a stream of level frames."""

    SEARCHING = "searching"
    MARKER = "marker"
    FRAME = "frame"

    def __init__(self, level_threshold: int = LEVEL_THRESHOLD):
        self.level_threshold = level_threshold
        self.state = self.SEARCHING
        self.decoded: List[int] = []
        self._counts = [0] * CODE_BITS
        self._sample_index = 0

    def feed(self, levels: Dict[int, int]) -> Optional[int]:
        """
        Consume one level frame.

        Args:
            levels: Frequency (Hz) -> magnitude (0-255)

        Returns:
            Pairing code if this sample completed a frame, else None
        """
        active = {frequency for frequency, level in levels.items() if level > self.level_threshold}
        marker_on = MARKER_FREQUENCY in active

        if self.state == self.SEARCHING:
            if marker_on:
                self.state = self.MARKER
            return None

        if self.state == self.MARKER:
            if marker_on:
                return None
            self.state = self.FRAME
            self._counts = [0] * CODE_BITS
            self._sample_index = 0

        if marker_on:
            # Marker inside a frame: the frame was cut short
            self.state = self.MARKER
            return None

        slot = self._sample_index // SAMPLES_PER_SLOT
        for column, frequency in enumerate(FREQUENCIES):
            if frequency in active:
                self._counts[slot * len(FREQUENCIES) + column] += 1
        self._sample_index += 1

        if self._sample_index < DATA_SLOTS * SAMPLES_PER_SLOT:
            return None

        bits = [1 if count >= MIN_BIT_DETECTIONS else 0 for count in self._counts]
        code = bits_to_code(bits)
        self.decoded.append(code)
        self.state = self.SEARCHING
        return code


class ToneSink(ABC):
    """Speaker side: plays tone sets."""

    @abstractmethod
    def play(self, frequencies: Sequence[int], duration_ms: int, gain: float = TONE_GAIN) -> None:
        """Start the given tones for one slot (empty = silence)."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Silence everything currently playing."""
        pass

    def close(self) -> None:
        """Release the output device."""
        pass


class ToneSource(ABC):
    """Microphone side: reports tone levels."""

    @abstractmethod
    def read_levels(self, frequencies: Sequence[int]) -> Optional[Dict[int, int]]:
        """Current magnitude (0-255) per frequency, None if no frame is available."""
        pass

    def close(self) -> None:
        """Release the capture device."""
        pass


class LoopbackChannel(ToneSink, ToneSource):
    """
    In-process sink/source pair: every played slot becomes level frames
    that a receiver reads back in order.
    """

    def __init__(self, level: int = 200):
        self.level = level
        self.closed = False
        self._frames: Deque[Dict[int, int]] = deque()
        self._lock = threading.Lock()

    def play(self, frequencies: Sequence[int], duration_ms: int, gain: float = TONE_GAIN) -> None:
        frame = {frequency: self.level for frequency in frequencies}
        with self._lock:
            for _ in range(max(1, duration_ms // SAMPLE_INTERVAL_MS)):
                self._frames.append(dict(frame))

    def stop(self) -> None:
        pass

    def read_levels(self, frequencies: Sequence[int]) -> Optional[Dict[int, int]]:
        with self._lock:
            if not self._frames:
                return None
            frame = self._frames.popleft()
        return {frequency: frame.get(frequency, 0) for frequency in frequencies}

    def close(self) -> None:
        self.closed = True

    @property
    def pending_frames(self) -> int:
        with self._lock:
            return len(self._frames)


@dataclass
class PairingResult:
    """Outcome of a receive window"""
    detected: bool = False
    pairing_code: Optional[int] = None
    confidence: float = 0.0
    error: Optional[str] = None

    def to_dict(self) -> dict:
        result = {
            'detected': self.detected,
            'pairingCode': self.pairing_code,
            'confidence': self.confidence
        }
        if self.error:
            result['error'] = self.error
        return result


class UltrasonicBeacon(Collector):
    """
    Ultrasonic audio pairing beacon.

    collect() only reports capabilities; emission and reception are
    explicit calls since they occupy the speaker/microphone.
    """

    def __init__(self, sink: Optional[ToneSink] = None, source: Optional[ToneSource] = None,
                 repeat_count: int = REPEAT_COUNT, level_threshold: int = LEVEL_THRESHOLD,
                 realtime: bool = True):
        """
        Initialize the beacon.

        Args:
            sink: Tone output, None if playback is unavailable
            source: Tone input, None if capture is unavailable
            repeat_count: Framed repeats per transmission
            level_threshold: Tone presence threshold (0-255)
            realtime: Pace emission/reception with wall-clock time
        """
        super().__init__('ultrasonic', 'Ultrasonic audio pairing beacon')
        self.sink = sink
        self.source = source
        self.repeat_count = repeat_count
        self.level_threshold = level_threshold
        self.realtime = realtime

        self._emitting = False
        self._receiving = False
        self._stop = BoundedWait()

    @classmethod
    def from_config(cls, config: dict, sink: Optional[ToneSink] = None,
                    source: Optional[ToneSource] = None) -> "UltrasonicBeacon":
        ultrasonic_config = config.get("ultrasonic", {})
        return cls(
            sink,
            source,
            repeat_count=ultrasonic_config.get("repeat_count", REPEAT_COUNT),
            level_threshold=ultrasonic_config.get("level_threshold", LEVEL_THRESHOLD),
            realtime=ultrasonic_config.get("realtime", True)
        )

    @property
    def emitting(self) -> bool:
        return self._emitting

    @property
    def receiving(self) -> bool:
        return self._receiving

    def collect(self) -> Dict[str, Any]:
        if self._emitting:
            mode = 'emitting'
        elif self._receiving:
            mode = 'receiving'
        else:
            mode = 'idle'

        return {
            'supported': self.sink is not None or self.source is not None,
            'emitSupported': self.sink is not None,
            'micSupported': self.source is not None,
            'mode': mode
        }

    def start_emitting(self, pairing_code: Union[int, str]) -> bool:
        """
        Play the full transmission for a pairing code.

        Returns:
            True if every slot was played, False if unsupported, stopped or failed
        """
        sink = self.sink
        if self._emitting:
            return False
        if sink is None:
            logger.warning("Ultrasonic emit requested but no tone output is available")
            return False

        schedule = build_transmission(pairing_code, self.repeat_count)
        self._stop.reset()
        self._emitting = True
        completed = False

        try:
            for slot in schedule:
                if not self._emitting:
                    break
                sink.play(slot.frequencies, slot.duration_ms)
                if self.realtime:
                    self._stop.wait(slot.duration_ms)
                # destroy() owns the device once it has cleared the flag
                if not self._emitting:
                    break
                sink.stop()
            else:
                completed = True
        except Exception as e:
            logger.warning(f"Ultrasonic emission failed: {e}")
        finally:
            self._emitting = False

        logger.info(f"Ultrasonic emission of code {pairing_code} "
                    f"{'completed' if completed else 'interrupted'} ({len(schedule)} slots)")
        return completed

    def start_receiving(self, timeout_ms: int = 10000) -> PairingResult:
        """
        Listen for a pairing code within the observation window.

        Exits early once repeat_count frames have decoded to the same code.

        Args:
            timeout_ms: Observation window length

        Returns:
            PairingResult, negative if nothing decoded or capture is unavailable
        """
        source = self.source
        if self._receiving or source is None:
            return PairingResult()

        window = ObservationWindow(
            timeout_ms=timeout_ms,
            early_exit_thresholds={AGREEMENT_SAMPLE_KIND: self.repeat_count}
        )

        self._stop.reset()
        self._receiving = True
        demodulator = ToneDemodulator(self.level_threshold)
        frequencies = FREQUENCIES + [MARKER_FREQUENCY]
        total_samples = int(window.timeout_ms // SAMPLE_INTERVAL_MS)
        error = None

        try:
            for _ in range(total_samples):
                if not self._receiving:
                    break
                levels = source.read_levels(frequencies) or {}
                if demodulator.feed(levels) is not None:
                    agreeing = self._agreement(demodulator.decoded)[1]
                    if window.satisfied({AGREEMENT_SAMPLE_KIND: agreeing}):
                        break
                if self.realtime and self._stop.wait(SAMPLE_INTERVAL_MS):
                    break
        except Exception as e:
            logger.warning(f"Ultrasonic capture failed: {e}")
            error = str(e)
        finally:
            self._receiving = False

        code, agreeing = self._agreement(demodulator.decoded)
        if code is None:
            return PairingResult(error=error)

        confidence = min(1.0, agreeing / self.repeat_count)
        logger.info(f"Ultrasonic pairing code {code} detected "
                    f"({agreeing}/{len(demodulator.decoded)} frames agree, confidence={confidence:.2f})")
        return PairingResult(detected=True, pairing_code=code, confidence=confidence, error=error)

    @staticmethod
    def _agreement(codes: List[int]) -> Tuple[Optional[int], int]:
        if not codes:
            return None, 0
        return Counter(codes).most_common(1)[0]

    def destroy(self) -> None:
        """Stop emission/reception and close audio resources."""
        self._emitting = False
        self._receiving = False
        self._stop.release()

        if self.sink is not None:
            try:
                self.sink.stop()
                self.sink.close()
            except Exception as e:
                logger.debug(f"Closing tone output failed: {e}")
            self.sink = None

        if self.source is not None:
            try:
                self.source.close()
            except Exception as e:
                logger.debug(f"Closing tone input failed: {e}")
            self.source = None
