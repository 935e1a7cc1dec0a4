#!/usr/bin/env python3
"""
VisitPrint Visitor ID Manager
=============================

Resolves one visitor ID across an ordered chain of storage mechanisms.

Process:
1. Check which mechanisms are available
2. Linear scan in priority order, first non-empty value wins
3. No value anywhere -> generate a new UUID v4
4. Repair pass: write the winner to every available mechanism that is
   missing it or holds a different value

The repair pass is sequential with no transaction across mechanisms. A
crash halfway leaves them out of sync until the next resolve() repeats it.

Author: Team VisitPrint
"""

import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import requests
from requests.cookies import RequestsCookieJar
from loguru import logger

from .storage_mechanism import StorageMechanism
from .cookie_storage import CookieStorage
from .local_storage import LocalStorage
from .session_storage import SessionStorage
from .window_name_storage import WindowNameStorage, WindowHandle
from .etag_storage import ETagStorage


def generate_visitor_id() -> str:
    """New random visitor ID (UUID v4)."""
    return str(uuid.uuid4())


@dataclass
class Resolution:
    """Outcome of a resolve() call"""
    visitor_id: str
    is_new: bool
    sources: List[str] = field(default_factory=list)   # Mechanisms that already held the ID
    repaired: List[str] = field(default_factory=list)  # Mechanisms written during repair

    def to_dict(self) -> dict:
        return {
            'visitorId': self.visitor_id,
            'isNew': self.is_new,
            'sources': self.sources,
            'repaired': self.repaired
        }


class VisitorIdManager:
    """
    Reads, generates and heals the visitor ID across mechanisms.

    Mechanisms are queried in the order given, fastest/most durable first.
    """

    def __init__(self, mechanisms: Sequence[StorageMechanism]):
        """
        Initialize visitor ID manager.

        Args:
            mechanisms: Storage mechanisms in priority order
        """
        self.mechanisms = list(mechanisms)
        logger.info(f"VisitorIdManager initialized with {len(self.mechanisms)} mechanisms: "
                    f"{', '.join(m.name for m in self.mechanisms)}")

    def available_mechanisms(self) -> List[StorageMechanism]:
        return [m for m in self.mechanisms if m.is_available()]

    def resolve(self) -> Resolution:
        """
        Resolve the visitor ID and heal drifted mechanisms.

        Returns:
            Resolution with the winning ID and bookkeeping
        """
        available = self.available_mechanisms()

        readings: Dict[str, Optional[str]] = {}
        for mechanism in available:
            readings[mechanism.name] = mechanism.read()

        visitor_id = next((value for value in readings.values() if value), None)
        is_new = visitor_id is None

        if is_new:
            visitor_id = generate_visitor_id()
            logger.info(f"No stored visitor ID found, generated {visitor_id}")
            sources = []
        else:
            sources = [name for name, value in readings.items() if value == visitor_id]
            logger.info(f"Visitor ID {visitor_id} recovered from {', '.join(sources)}")

        repaired = self.repair(visitor_id, available, readings)

        return Resolution(
            visitor_id=visitor_id,
            is_new=is_new,
            sources=sources,
            repaired=repaired
        )

    def repair(self, visitor_id: str, available: Sequence[StorageMechanism],
               readings: Dict[str, Optional[str]]) -> List[str]:
        """
        Write the visitor ID to every available mechanism that lacks it.

        Args:
            visitor_id: Resolved visitor ID
            available: Mechanisms that reported themselves available
            readings: Values read during the scan, keyed by mechanism name

        Returns:
            Names of mechanisms successfully written
        """
        repaired = []
        for mechanism in available:
            if readings.get(mechanism.name) == visitor_id:
                continue
            if mechanism.write(visitor_id):
                repaired.append(mechanism.name)
            else:
                logger.debug(f"Repair write to '{mechanism.name}' failed")

        if repaired:
            logger.info(f"Repaired visitor ID in: {', '.join(repaired)}")
        return repaired

    def adopt(self, visitor_id: str) -> List[str]:
        """
        Write an externally supplied visitor ID (server match, ETag recovery)
        to every available mechanism.

        Returns:
            Names of mechanisms successfully written
        """
        written = [m.name for m in self.available_mechanisms() if m.write(visitor_id)]
        logger.info(f"Adopted visitor ID {visitor_id} into {len(written)} mechanisms")
        return written


def build_default_mechanisms(config: dict,
                             jar: Optional[RequestsCookieJar] = None,
                             window: Optional[WindowHandle] = None,
                             session: Optional[requests.Session] = None) -> List[StorageMechanism]:
    """
    Build the default priority chain from configuration.

    Order: cookie, local storage, session storage, window name, ETag (when a
    server endpoint is configured).

    Args:
        config: Configuration dictionary
        jar: Cookie jar, defaults to the session's cookies
        window: Window name slot
        session: requests session shared with the submission client

    Returns:
        List of storage mechanisms in priority order
    """
    persistence_config = config.get("persistence", {})
    server_config = config.get("server", {})

    session = session or requests.Session()
    local = LocalStorage(
        persistence_config.get("local_db_path", "data/visitprint.db"),
        origin=persistence_config.get("origin", "default")
    )

    mechanisms: List[StorageMechanism] = [
        CookieStorage(
            jar if jar is not None else session.cookies,
            enabled=persistence_config.get("cookie_enabled", True)
        ),
        local,
        SessionStorage(),
        WindowNameStorage(window),
    ]

    endpoint = server_config.get("endpoint")
    if endpoint and persistence_config.get("etag_enabled", True):
        mechanisms.append(ETagStorage(
            endpoint,
            session=session,
            tag_cache=local,
            timeout=server_config.get("timeout", 5)
        ))

    return mechanisms
