"""
Cookie-backed visitor ID storage.

Stores the raw visitor ID in a single first-party cookie on a requests
cookie jar, so the ID also travels with requests made through the owning
session.
"""

import time
from typing import Optional

from requests.cookies import RequestsCookieJar

from .storage_mechanism import StorageMechanism, VISITOR_ID_KEY


# 400 days, the longest lifetime browsers honour
COOKIE_MAX_AGE = 34560000


class CookieStorage(StorageMechanism):
    """Visitor ID in the "_vid" cookie."""

    def __init__(self, jar: Optional[RequestsCookieJar] = None, enabled: bool = True,
                 key: str = VISITOR_ID_KEY, domain: str = "", path: str = "/"):
        """
        Args:
            jar: Cookie jar to use (usually requests.Session().cookies)
            enabled: False when cookies are blocked for this context
            key: Cookie name
            domain: Cookie domain ("" = host-only)
            path: Cookie path
        """
        super().__init__('cookie')
        self.jar = jar if jar is not None else RequestsCookieJar()
        self.enabled = enabled
        self.key = key
        self.domain = domain
        self.path = path

    def _read(self) -> Optional[str]:
        return self.jar.get(self.key, domain=self.domain or None, path=self.path)

    def _write(self, visitor_id: str) -> bool:
        self.jar.set(
            self.key,
            visitor_id,
            domain=self.domain,
            path=self.path,
            expires=int(time.time()) + COOKIE_MAX_AGE
        )
        return True

    def _is_available(self) -> bool:
        return self.enabled

    def clear(self) -> None:
        """Expire the cookie (max-age zero)."""
        self.jar.set(self.key, None, domain=self.domain, path=self.path)
