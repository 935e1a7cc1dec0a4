#!/usr/bin/env python3
"""
VisitPrint ETag Storage
=======================

Remote visitor ID persistence using ETag-style correlation.

Read:
  GET {endpoint}/api/etag-store with If-None-Match: <cached tag or "">
  2xx  -> body {"visitorId": ...}, ETag header cached for next time
  304  -> unchanged, the visitor ID stored with the cached tag is returned
  else -> None, not an error

Write:
  POST {endpoint}/api/etag-store with {"visitorId": ...}
  2xx with {"stored": true, "etag": ...} -> tag and visitor ID cached, returns True

Author: Team VisitPrint
"""

from typing import Optional

import requests
from loguru import logger

from .storage_mechanism import StorageMechanism
from .local_storage import LocalStorage


ETAG_CACHE_KEY = "_fp_etag"
ETAG_VISITOR_KEY = "_fp_etag_vid"


def is_success(response: requests.Response) -> bool:
    """2xx only; 304 Not Modified is not a success here."""
    return 200 <= response.status_code < 300


class ETagStorage(StorageMechanism):
    """Visitor ID recovered from a server-side ETag store."""

    def __init__(self, endpoint: str, session: Optional[requests.Session] = None,
                 tag_cache: Optional[LocalStorage] = None, timeout: float = 5.0):
        """
        Initialize ETag storage.

        Args:
            endpoint: Server base URL (one trailing slash is stripped)
            session: requests session to use (shared with the submission client)
            tag_cache: Local store for the last tag, in-memory if None
            timeout: Request timeout in seconds
        """
        super().__init__('etag')
        self.endpoint = endpoint[:-1] if endpoint.endswith('/') else endpoint
        self.session = session or requests.Session()
        self.tag_cache = tag_cache
        self.timeout = timeout
        self._memory_tag: Optional[str] = None
        self._memory_visitor_id: Optional[str] = None

    @property
    def url(self) -> str:
        return f"{self.endpoint}/api/etag-store"

    def get_cached_tag(self) -> Optional[str]:
        if self.tag_cache is not None:
            return self.tag_cache.get_item(ETAG_CACHE_KEY)
        return self._memory_tag

    def get_cached_visitor_id(self) -> Optional[str]:
        """Visitor ID the cached tag was issued for."""
        if self.tag_cache is not None:
            return self.tag_cache.get_item(ETAG_VISITOR_KEY)
        return self._memory_visitor_id

    def cache_tag(self, tag: str, visitor_id: Optional[str] = None) -> None:
        if self.tag_cache is not None:
            self.tag_cache.set_item(ETAG_CACHE_KEY, tag)
            if visitor_id:
                self.tag_cache.set_item(ETAG_VISITOR_KEY, visitor_id)
        else:
            self._memory_tag = tag
            if visitor_id:
                self._memory_visitor_id = visitor_id

    def _read(self) -> Optional[str]:
        cached_tag = self.get_cached_tag()
        response = self.session.get(
            self.url,
            headers={'If-None-Match': cached_tag or ''},
            timeout=self.timeout
        )

        if response.status_code == 304 and cached_tag:
            logger.debug("ETag store unchanged")
            return self.get_cached_visitor_id()

        if not is_success(response):
            logger.debug(f"ETag store returned {response.status_code}, no update")
            return None

        visitor_id = response.json().get('visitorId')
        etag = response.headers.get('ETag')
        if etag:
            self.cache_tag(etag, visitor_id)
        return visitor_id

    def _write(self, visitor_id: str) -> bool:
        response = self.session.post(
            self.url,
            json={'visitorId': visitor_id},
            timeout=self.timeout
        )

        if not is_success(response):
            logger.debug(f"ETag store rejected write ({response.status_code})")
            return False

        body = response.json()
        stored = bool(body.get('stored', False))
        etag = body.get('etag')
        if etag:
            self.cache_tag(etag, visitor_id if stored else None)
        return stored

    def _is_available(self) -> bool:
        return bool(self.endpoint)
