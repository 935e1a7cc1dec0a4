"""
Window-scoped visitor ID storage.

The browsing context's name slot survives same-tab navigation. It holds a
JSON object; the visitor ID lives under "_vid" next to whatever other keys
are already there.
"""

import json
from dataclasses import dataclass
from typing import Optional

from .storage_mechanism import StorageMechanism, VISITOR_ID_KEY


@dataclass
class WindowHandle:
    """Transient name slot of one browsing context"""
    name: str = ""


def _parse_blob(raw: str) -> dict:
    # Non-JSON or non-object content counts as empty
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


class WindowNameStorage(StorageMechanism):
    """Visitor ID merged into the window.name JSON blob."""

    def __init__(self, window: Optional[WindowHandle] = None, key: str = VISITOR_ID_KEY):
        super().__init__('windowName')
        self.window = window if window is not None else WindowHandle()
        self.key = key

    def _read(self) -> Optional[str]:
        value = _parse_blob(self.window.name).get(self.key)
        return value if isinstance(value, str) else None

    def _write(self, visitor_id: str) -> bool:
        data = _parse_blob(self.window.name)
        data[self.key] = visitor_id
        self.window.name = json.dumps(data)
        return True

    def _is_available(self) -> bool:
        return isinstance(self.window.name, str)
