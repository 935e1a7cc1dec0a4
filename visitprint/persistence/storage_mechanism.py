#!/usr/bin/env python3
"""
VisitPrint Storage Mechanism Interface
======================================

Uniform contract for every place a visitor ID can be persisted.

Each backend implements _read/_write/_is_available. The public
read/write/is_available methods form the failure boundary: any exception
raised by a backend (permission denied, storage disabled, network error)
is logged and reported as "no value" / "not available", never propagated
to the resolver.

Author: Team VisitPrint
"""

from abc import ABC, abstractmethod
from typing import Optional

from loguru import logger


# Reserved key used by every key/value backed mechanism
VISITOR_ID_KEY = "_vid"


class StorageMechanism(ABC):
    """Abstract base class for visitor ID storage."""

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def _read(self) -> Optional[str]:
        """Read the stored visitor ID, or None if absent."""
        pass

    @abstractmethod
    def _write(self, visitor_id: str) -> bool:
        """Persist the visitor ID. Returns True on success."""
        pass

    @abstractmethod
    def _is_available(self) -> bool:
        """Whether this mechanism can currently be used."""
        pass

    def read(self) -> Optional[str]:
        """Read visitor ID, None if absent or on any failure."""
        try:
            value = self._read()
        except Exception as e:
            logger.debug(f"Storage '{self.name}' read failed: {e}")
            return None
        return value or None

    def write(self, visitor_id: str) -> bool:
        """Write visitor ID, False on any failure."""
        try:
            return bool(self._write(visitor_id))
        except Exception as e:
            logger.debug(f"Storage '{self.name}' write failed: {e}")
            return False

    def is_available(self) -> bool:
        """Availability check, False on any failure."""
        try:
            return bool(self._is_available())
        except Exception as e:
            logger.debug(f"Storage '{self.name}' availability check failed: {e}")
            return False

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
