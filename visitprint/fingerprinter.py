#!/usr/bin/env python3
"""
VisitPrint Fingerprinter
========================

Runs every registered collector and produces:
- fingerprint: digest over all signal data (browser-specific)
- deviceId: digest over each collector's cross-browser keys only
  (hardware/OS signals that stay the same in another browser)

A collector that raises is recorded with data=None and its error message,
so it drops out of both digests without failing the run.

Author: Team VisitPrint
"""

import time
from dataclasses import dataclass, field
from typing import List, Optional

from loguru import logger

from .collectors.collector import Collector
from .fingerprinting.canonical_hash import SignalPayload, hash_signals


@dataclass
class CollectionResult:
    """One full collection run"""
    fingerprint: str
    device_id: str
    signals: List[SignalPayload] = field(default_factory=list)
    visitor_id: Optional[str] = None

    def signal(self, name: str) -> Optional[SignalPayload]:
        return next((s for s in self.signals if s.name == name), None)

    def to_dict(self) -> dict:
        return {
            'fingerprint': self.fingerprint,
            'deviceId': self.device_id,
            'visitorId': self.visitor_id,
            'signals': [s.to_dict() for s in self.signals]
        }


class Fingerprinter:
    """Orchestrates collectors into a fingerprint."""

    def __init__(self):
        self.collectors: List[Collector] = []

    def register(self, collector: Collector) -> "Fingerprinter":
        """Register a collector (chainable). Names must be unique."""
        if any(c.name == collector.name for c in self.collectors):
            raise ValueError(f"Collector '{collector.name}' is already registered")
        self.collectors.append(collector)
        return self

    def collect(self, visitor_id: Optional[str] = None) -> CollectionResult:
        """
        Run all collectors and hash the results.

        Args:
            visitor_id: Resolved visitor ID to attach to the result

        Returns:
            CollectionResult with fingerprint, device ID and signals
        """
        signals = [self._run_collector(c) for c in self.collectors]

        result = CollectionResult(
            fingerprint=hash_signals(signals),
            device_id=hash_signals(self._cross_browser_signals(signals)),
            signals=signals,
            visitor_id=visitor_id
        )

        failed = [s.name for s in signals if s.error]
        logger.info(f"Collected {len(signals)} signals (fingerprint={result.fingerprint[:16]}..., "
                    f"failed={failed or 'none'})")
        return result

    def _run_collector(self, collector: Collector) -> SignalPayload:
        start = time.perf_counter()
        try:
            data = collector.collect()
            error = None
        except Exception as e:
            logger.warning(f"Collector '{collector.name}' failed: {e}")
            data = None
            error = str(e)

        return SignalPayload(
            name=collector.name,
            description=collector.description,
            data=data,
            duration=(time.perf_counter() - start) * 1000.0,
            error=error
        )

    def _cross_browser_signals(self, signals: List[SignalPayload]) -> List[SignalPayload]:
        keys_by_name = {c.name: c.cross_browser_keys for c in self.collectors}
        subset = []
        for signal in signals:
            keys = keys_by_name.get(signal.name)
            if not keys or not isinstance(signal.data, dict):
                continue
            subset.append(SignalPayload(
                name=signal.name,
                data={k: signal.data[k] for k in keys if k in signal.data}
            ))
        return subset
