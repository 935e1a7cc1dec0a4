"""
VisitPrint Fingerprinting Module

- canonical_hash: stable SHA-256 digest of signal payloads
- confidence_scorer: weighted boolean-indicator scoring (proxy/anonymization)
- readable_id: display name for a digest

Confidence verdict defaults to 60% of total indicator weight.
"""

from .canonical_hash import SignalPayload, hash_signals, canonicalize, strip_display_only, DISPLAY_ONLY_PREFIX
from .confidence_scorer import (
    ScoringPolicy,
    ScoreResult,
    ScoringConfigError,
    ProxyClassifier,
    score_indicators,
    DEFAULT_PROXY_WEIGHTS,
    DEFAULT_THRESHOLD
)
from .readable_id import readable_id

__all__ = [
    'SignalPayload',
    'hash_signals',
    'canonicalize',
    'strip_display_only',
    'DISPLAY_ONLY_PREFIX',
    'ScoringPolicy',
    'ScoreResult',
    'ScoringConfigError',
    'ProxyClassifier',
    'score_indicators',
    'DEFAULT_PROXY_WEIGHTS',
    'DEFAULT_THRESHOLD',
    'readable_id'
]
