"""
VisitPrint Visitor ID Persistence

Stores and recovers one visitor ID through several independent mechanisms:
- Cookie: first-party "_vid" cookie
- Local storage: SQLite key/value map, survives across sessions
- Session storage: in-memory, lives for the session
- Window name: JSON blob in the browsing context name slot
- ETag: server-side store keyed by an opaque version tag

VisitorIdManager resolves them in priority order and heals drift.
"""

from .storage_mechanism import StorageMechanism, VISITOR_ID_KEY
from .cookie_storage import CookieStorage
from .local_storage import LocalStorage
from .session_storage import SessionStorage
from .window_name_storage import WindowNameStorage, WindowHandle
from .etag_storage import ETagStorage
from .visitor_id_manager import VisitorIdManager, Resolution, build_default_mechanisms, generate_visitor_id

__all__ = [
    'StorageMechanism',
    'VISITOR_ID_KEY',
    'CookieStorage',
    'LocalStorage',
    'SessionStorage',
    'WindowNameStorage',
    'WindowHandle',
    'ETagStorage',
    'VisitorIdManager',
    'Resolution',
    'build_default_mechanisms',
    'generate_visitor_id'
]
