"""
Canonical Signal Hashing Module

Turns a list of named signal payloads into a stable SHA-256 digest.

The digest ignores:
- payloads whose data is None (probe failed or unsupported)
- display-only keys (prefixed with "_") at any nesting level
- insertion order of object keys and of the payload list itself

Array order is significant and is preserved.
"""

import hashlib
import json
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from loguru import logger


# Keys starting with this marker are kept for display but never hashed
DISPLAY_ONLY_PREFIX = "_"


@dataclass
class SignalPayload:
    """Result of a single signal collector run"""
    name: str
    data: Optional[Any] = None
    description: str = ""
    duration: float = 0.0
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'description': self.description,
            'data': self.data,
            'duration': self.duration,
            'error': self.error
        }


PayloadLike = Union[SignalPayload, Mapping[str, Any]]


def _payload_fields(payload: PayloadLike) -> tuple:
    if isinstance(payload, SignalPayload):
        return payload.name, payload.data
    return payload.get('name'), payload.get('data')


def strip_display_only(value: Any) -> Any:
    """
    Recursively drop display-only keys and normalise containers.

    Mapping keys are coerced to str so that sorting never compares
    mixed key types. Tuples are treated as arrays.
    """
    if isinstance(value, Mapping):
        return {
            str(key): strip_display_only(item)
            for key, item in value.items()
            if not str(key).startswith(DISPLAY_ONLY_PREFIX)
        }
    if isinstance(value, (list, tuple)):
        return [strip_display_only(item) for item in value]
    return value


def canonicalize(payloads: Iterable[PayloadLike]) -> str:
    """
    Build the canonical serialization of a payload list.

    Args:
        payloads: SignalPayload objects or {"name", "data"} mappings

    Returns:
        Compact JSON string with sorted keys, payloads ordered by name
    """
    entries: List[Dict[str, Any]] = []

    for payload in payloads:
        name, data = _payload_fields(payload)
        if data is None:
            continue
        entries.append({'name': str(name), 'data': strip_display_only(data)})

    entries.sort(key=lambda entry: entry['name'])

    return json.dumps(
        entries,
        sort_keys=True,
        separators=(',', ':'),
        ensure_ascii=False,
        default=str
    )


def hash_signals(payloads: Iterable[PayloadLike]) -> str:
    """
    Hash collected signals into a single fingerprint string.

    Args:
        payloads: Collected signal payloads

    Returns:
        64-character lowercase hex SHA-256 digest
    """
    canonical = canonicalize(payloads)
    digest = hashlib.sha256(canonical.encode('utf-8', 'surrogatepass')).hexdigest()
    logger.debug(f"Signal digest computed: {digest[:16]}... ({len(canonical)} bytes canonical)")
    return digest
