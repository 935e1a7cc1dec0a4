#!/usr/bin/env python3
"""
VisitPrint Timed Collector Protocol
===================================

Collection in two phases:
- collect(): values known immediately (capability checks, static results);
  also attaches the event listeners that feed the accumulator
- observe(timeout_ms): waits for event samples to accumulate, resolving
  either as soon as every per-kind sample threshold is met (early exit) or
  when the timeout elapses, with whatever was gathered

State machine:
  idle -> collecting -> observing -> resolved | destroyed

destroy() is valid from any state and idempotent. It removes every listener,
releases a pending observe() and guarantees no further accumulator mutation.

Author: Team VisitPrint
"""

import threading
from abc import abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional, Sequence

from loguru import logger

from .collector import Collector


DEFAULT_OBSERVE_TIMEOUT_MS = 10000


class CollectorState(Enum):
    """Lifecycle of a timed collector."""
    IDLE = "idle"
    COLLECTING = "collecting"
    OBSERVING = "observing"
    RESOLVED = "resolved"
    DESTROYED = "destroyed"


@dataclass
class ObservationWindow:
    """Deadline plus early-exit sample thresholds for one observe() call"""
    timeout_ms: int = DEFAULT_OBSERVE_TIMEOUT_MS
    early_exit_thresholds: Dict[str, int] = field(default_factory=dict)

    def satisfied(self, counts: Dict[str, int]) -> bool:
        """True when every threshold is met. An empty table never exits early."""
        if not self.early_exit_thresholds:
            return False
        return all(
            counts.get(kind, 0) >= minimum
            for kind, minimum in self.early_exit_thresholds.items()
        )


class BoundedWait:
    """
    Wait with a deadline and an early-release signal.

    Whichever happens first wins: release() from an event handler or the
    timeout expiring.
    """

    def __init__(self):
        self._released = threading.Event()

    def release(self) -> None:
        self._released.set()

    def reset(self) -> None:
        self._released.clear()

    @property
    def released(self) -> bool:
        return self._released.is_set()

    def wait(self, timeout_ms: float) -> bool:
        """
        Block until released or timeout.

        Returns:
            True if released early, False if the deadline passed
        """
        return self._released.wait(max(timeout_ms, 0) / 1000.0)


class TimedCollector(Collector):
    """
    Base for collectors that accumulate discrete events over a window.

    Subclasses implement the immediate probe, listener attach/detach,
    per-kind sample counts and the aggregated result. Event handlers must
    mutate state only through _accept_sample().
    """

    def __init__(self, name: str, description: str, cross_browser_keys: Sequence[str] = (),
                 timeout_ms: int = DEFAULT_OBSERVE_TIMEOUT_MS,
                 thresholds: Optional[Dict[str, int]] = None):
        super().__init__(name, description, cross_browser_keys)
        self.timeout_ms = timeout_ms
        self.thresholds = dict(thresholds or {})
        self.state = CollectorState.IDLE

        self._lock = threading.Lock()
        self._wait = BoundedWait()
        self._window: Optional[ObservationWindow] = None

    @abstractmethod
    def _collect_immediate(self) -> Dict[str, Any]:
        """Values available synchronously."""
        pass

    @abstractmethod
    def _attach(self) -> None:
        """Register event listeners."""
        pass

    @abstractmethod
    def _detach(self) -> None:
        """Unregister every listener registered by _attach()."""
        pass

    @abstractmethod
    def _sample_counts(self) -> Dict[str, int]:
        """Accepted sample count per kind. Called with the lock held."""
        pass

    @abstractmethod
    def _build_result(self) -> Dict[str, Any]:
        """Aggregate the accumulator. Called with the lock held."""
        pass

    @property
    def destroyed(self) -> bool:
        return self.state is CollectorState.DESTROYED

    def collect(self) -> Dict[str, Any]:
        """Immediate phase; starts background listening on first call."""
        data = self._collect_immediate()

        with self._lock:
            if self.state is CollectorState.IDLE:
                self._attach()
                self.state = CollectorState.COLLECTING
                logger.debug(f"Collector '{self.name}' listening")

        return data

    def observe(self, timeout_ms: Optional[int] = None) -> Dict[str, Any]:
        """
        Wait for samples, resolving early once every threshold is met.

        Args:
            timeout_ms: Observation deadline, defaults to the collector's

        Returns:
            Aggregated result; all-None fields and zero counts if nothing arrived
        """
        window = ObservationWindow(
            timeout_ms=self.timeout_ms if timeout_ms is None else timeout_ms,
            early_exit_thresholds=dict(self.thresholds)
        )

        with self._lock:
            if self.state is CollectorState.DESTROYED:
                return self._build_result()
            self.state = CollectorState.OBSERVING
            self._window = window
            ready = window.satisfied(self._sample_counts())
            if not ready:
                self._wait.reset()

        early = ready or self._wait.wait(window.timeout_ms)

        with self._lock:
            if self.state is CollectorState.OBSERVING:
                self.state = CollectorState.RESOLVED
            self._window = None
            result = self._build_result()

        logger.debug(f"Collector '{self.name}' observation resolved "
                     f"({'early exit' if early else 'timeout'}): {self._format_counts(result)}")
        return result

    def destroy(self) -> None:
        """Remove listeners and release any pending observe(). Idempotent."""
        with self._lock:
            if self.state is CollectorState.DESTROYED:
                return
            self.state = CollectorState.DESTROYED
            self._detach()
        self._wait.release()
        logger.debug(f"Collector '{self.name}' destroyed")

    def _accept_sample(self, mutate: Callable[[], None]) -> None:
        """Apply an accumulator mutation unless destroyed, then check early exit."""
        with self._lock:
            if self.state is CollectorState.DESTROYED:
                return
            mutate()
            window = self._window
            counts = self._sample_counts()

        if window is not None and window.satisfied(counts):
            self._wait.release()

    @staticmethod
    def _format_counts(result: Dict[str, Any]) -> str:
        return ", ".join(f"{k}={v}" for k, v in result.items() if k.endswith("SampleCount"))
