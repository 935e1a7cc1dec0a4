"""
Weighted Confidence Scorer

Turns a set of boolean indicators into a confidence percentage and a verdict.
The weight table and threshold are passed in as a ScoringPolicy, so several
classifiers can coexist with their own tables.

Confidence Formula:
confidence_percent = round(100 × Σ(weight_i for true indicator_i) / Σ(weight_i))

Indicators missing from the input are treated as false but still count
toward the total weight.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from loguru import logger

from .canonical_hash import SignalPayload, PayloadLike


# Anonymization indicator weights (total = 256)
DEFAULT_PROXY_WEIGHTS = {
    'fixedCores': 40,            # Hardware concurrency spoofed to 2/4/8
    'fixedMemory': 35,           # Device memory removed or spoofed
    'webGLGeneric': 30,          # Renderer reported as "Mozilla"
    'genericUA': 25,             # Standardized User-Agent
    'webGLBlocked': 25,
    'canvasRandomized': 20,      # Canvas output differs between renders
    'forcedEnUS': 12,
    'torCommonResolution': 12,   # Many false positives
    'uaConsistency': 12,
    'timingAnomaly': 10,
    'limitedFonts': 15,
    'resolutionRounded': 15,     # Screen rounded to 100px
    'highLatency': 5             # Hard to measure accurately
}

# Verdict threshold (percent)
DEFAULT_THRESHOLD = 60

TOR_USER_AGENT = 'Mozilla/5.0 (Windows NT 10.0; rv:109.0) Gecko/20100101 Firefox/115.0'

TOR_COMMON_RESOLUTIONS = {
    (1000, 900), (1100, 900), (1200, 900), (1300, 900), (1400, 900),
    (1000, 1000), (1100, 1000), (1200, 1000), (1300, 1000), (1400, 1000),
    (1920, 1080), (1366, 768)
}

SPOOFED_CORE_COUNTS = (2, 4, 8)
SPOOFED_MEMORY_SIZES = (None, 2, 4, 8)

# Fewer detected fonts than this is suspicious
MIN_EXPECTED_FONTS = 5

HIGH_LATENCY_MS = 3000


class ScoringConfigError(ValueError):
    """Raised when a weight table cannot produce a meaningful score."""


@dataclass(frozen=True)
class ScoringPolicy:
    """Indicator weight table plus verdict threshold"""
    weights: Dict[str, int]
    threshold: int = DEFAULT_THRESHOLD

    def __post_init__(self):
        if not self.weights:
            raise ScoringConfigError("Weight table is empty")
        for name, weight in self.weights.items():
            if not isinstance(weight, int) or isinstance(weight, bool) or weight <= 0:
                raise ScoringConfigError(f"Weight for '{name}' must be a positive integer, got {weight!r}")
        if not isinstance(self.threshold, (int, float)) or isinstance(self.threshold, bool):
            raise ScoringConfigError(f"Threshold must be a number, got {self.threshold!r}")

    @property
    def total_weight(self) -> int:
        return sum(self.weights.values())

    @classmethod
    def from_config(cls, config: dict, default_weights: Optional[Dict[str, int]] = None) -> "ScoringPolicy":
        """
        Build a policy from the "scoring" config section.

        Configured weights override individual defaults; the table is
        otherwise the default one.
        """
        scoring_config = config.get("scoring", {})
        weights = dict(default_weights or DEFAULT_PROXY_WEIGHTS)
        weights.update(scoring_config.get("weights") or {})
        threshold = scoring_config.get("threshold", DEFAULT_THRESHOLD)
        return cls(weights=weights, threshold=threshold)


@dataclass
class ScoreResult:
    """Weighted score for one indicator set"""
    score: int
    total_weight: int
    confidence_percent: int
    verdict: bool
    detected: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'score': self.score,
            'totalWeight': self.total_weight,
            'confidencePercent': self.confidence_percent,
            'verdict': self.verdict,
            'detected': self.detected
        }


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def score_indicators(indicators: Mapping[str, bool], policy: ScoringPolicy) -> ScoreResult:
    """
    Score boolean indicators against a weight table.

    Args:
        indicators: Indicator name -> bool. Only literal True counts.
        policy: Weight table and threshold

    Returns:
        ScoreResult with score, total weight, percent and verdict
    """
    total_weight = policy.total_weight
    score = 0
    detected = []

    for name, weight in policy.weights.items():
        if indicators.get(name) is True:
            score += weight
            detected.append(name)

    confidence_percent = _round_half_up(100 * score / total_weight)

    return ScoreResult(
        score=score,
        total_weight=total_weight,
        confidence_percent=confidence_percent,
        verdict=confidence_percent >= policy.threshold,
        detected=detected
    )


class ProxyClassifier:
    """
    Classifies proxy/anonymization browser usage from collected signals.

    Process:
    1. Derive boolean indicators from signal payloads (null payloads skipped)
    2. Score them against the anonymization weight table
    3. Verdict is True when confidence >= threshold
    """

    def __init__(self, policy: Optional[ScoringPolicy] = None):
        """
        Initialize proxy classifier.

        Args:
            policy: Scoring policy, defaults to DEFAULT_PROXY_WEIGHTS at 60%
        """
        self.policy = policy or ScoringPolicy(weights=dict(DEFAULT_PROXY_WEIGHTS))

    @classmethod
    def from_config(cls, config: dict) -> "ProxyClassifier":
        return cls(ScoringPolicy.from_config(config, DEFAULT_PROXY_WEIGHTS))

    def classify(self, indicators: Mapping[str, bool]) -> ScoreResult:
        result = score_indicators(indicators, self.policy)
        logger.info(f"Proxy classification: {result.confidence_percent}% "
                    f"(score={result.score}/{result.total_weight}, verdict={result.verdict})")
        return result

    def classify_signals(self, signals: Iterable[PayloadLike]) -> ScoreResult:
        return self.classify(self.indicators_from_signals(signals))

    @staticmethod
    def indicators_from_signals(signals: Iterable[PayloadLike]) -> Dict[str, bool]:
        """
        Derive anonymization indicators from collected signals.

        Args:
            signals: Collected payloads; those with data=None are ignored

        Returns:
            Dict of indicator name -> bool (only indicators that could be evaluated)
        """
        data_by_name: Dict[str, Any] = {}
        for signal in signals:
            if isinstance(signal, SignalPayload):
                name, data = signal.name, signal.data
            else:
                name, data = signal.get('name'), signal.get('data')
            if isinstance(data, Mapping):
                data_by_name[name] = data

        indicators: Dict[str, bool] = {}

        navigator = data_by_name.get('navigator')
        if navigator is not None:
            indicators['fixedCores'] = navigator.get('hardwareConcurrency') in SPOOFED_CORE_COUNTS
            indicators['fixedMemory'] = navigator.get('deviceMemory') in SPOOFED_MEMORY_SIZES

            user_agent = navigator.get('userAgent') or ''
            platform = navigator.get('platform') or ''
            languages = list(navigator.get('languages') or [])
            indicators['genericUA'] = user_agent == TOR_USER_AGENT
            indicators['forcedEnUS'] = navigator.get('language') == 'en-US' and languages == ['en-US']
            indicators['uaConsistency'] = (
                'Windows NT 10.0' in user_agent
                and bool(platform)
                and not any(os_name in platform for os_name in ('Win', 'Linux', 'Mac'))
            )

        screen = data_by_name.get('screen')
        if screen is not None:
            width, height = screen.get('width'), screen.get('height')
            if isinstance(width, int) and isinstance(height, int):
                indicators['torCommonResolution'] = (width, height) in TOR_COMMON_RESOLUTIONS
                indicators['resolutionRounded'] = width % 100 == 0 and height % 50 == 0

        webgl = data_by_name.get('webgl')
        if webgl is not None:
            indicators['webGLBlocked'] = webgl.get('supported') is False
            vendor = webgl.get('unmaskedVendor', webgl.get('vendor')) or ''
            renderer = webgl.get('unmaskedRenderer', webgl.get('renderer')) or ''
            indicators['webGLGeneric'] = vendor == 'Mozilla' and renderer == 'Mozilla'

        canvas = data_by_name.get('canvas')
        if canvas is not None:
            indicators['canvasRandomized'] = bool(canvas.get('randomized', False))

        fonts = data_by_name.get('fonts')
        if fonts is not None:
            detected_fonts = fonts.get('detected')
            if detected_fonts is not None:
                indicators['limitedFonts'] = len(detected_fonts) < MIN_EXPECTED_FONTS

        timing = data_by_name.get('timing')
        if timing is not None:
            load_time = timing.get('loadTime')
            indicators['highLatency'] = isinstance(load_time, (int, float)) and load_time > HIGH_LATENCY_MS
            indicators['timingAnomaly'] = bool(timing.get('precisionClamped', False))

        return indicators
