"""
VisitPrint Core Modules
=======================

Returning-visitor identification from browser signals.

Modules:
- fingerprinting: canonical signal digest, weighted confidence scoring
- persistence: visitor ID storage mechanisms and the resolver chain
- collectors: collector interface, timed observation, pointer, ultrasonic pairing
- fingerprinter: runs collectors, produces fingerprint and device ID
- client: submission to the matching server
- session: end-to-end visit flow
"""

from .fingerprinting import SignalPayload, hash_signals, ProxyClassifier, ScoringPolicy, score_indicators, readable_id
from .persistence import VisitorIdManager, build_default_mechanisms
from .collectors import PointerCollector, UltrasonicBeacon
from .fingerprinter import Fingerprinter, CollectionResult
from .client import FingerprintClient, ServerError
from .session import VisitSession, VisitOutcome
from .config import load_config, setup_logging

__all__ = [
    "SignalPayload",
    "hash_signals",
    "ProxyClassifier",
    "ScoringPolicy",
    "score_indicators",
    "readable_id",
    "VisitorIdManager",
    "build_default_mechanisms",
    "PointerCollector",
    "UltrasonicBeacon",
    "Fingerprinter",
    "CollectionResult",
    "FingerprintClient",
    "ServerError",
    "VisitSession",
    "VisitOutcome",
    "load_config",
    "setup_logging"
]

__version__ = "1.0.0"
