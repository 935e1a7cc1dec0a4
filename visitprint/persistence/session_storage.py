"""
Session-scoped visitor ID storage.

In-memory map that lives as long as the process (one browsing session).
"""

from typing import Dict, Optional

from .storage_mechanism import StorageMechanism, VISITOR_ID_KEY


class SessionStorage(StorageMechanism):
    """Visitor ID held for the lifetime of the session."""

    def __init__(self, store: Optional[Dict[str, str]] = None, key: str = VISITOR_ID_KEY):
        super().__init__('sessionStorage')
        self.store = store if store is not None else {}
        self.key = key

    def _read(self) -> Optional[str]:
        return self.store.get(self.key)

    def _write(self, visitor_id: str) -> bool:
        self.store[self.key] = visitor_id
        return True

    def _is_available(self) -> bool:
        return True
