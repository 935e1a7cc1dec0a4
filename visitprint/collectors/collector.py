"""
Collector capability interface.

Every signal collector has a unique name, a human-readable description and a
collect() method returning a dict of serializable values. cross_browser_keys
lists keys whose values depend on hardware/OS rather than the browser
engine; they feed the cross-browser device ID.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Sequence


class CollectorNotImplemented(NotImplementedError):
    """Raised by collectors that have no probe behind them."""


class Collector(ABC):
    """Abstract base class for signal collectors."""

    def __init__(self, name: str, description: str, cross_browser_keys: Sequence[str] = ()):
        self.name = name
        self.description = description
        self.cross_browser_keys = list(cross_browser_keys)

    @abstractmethod
    def collect(self) -> Dict[str, Any]:
        """Collect the signal. Keys are signal names, values serializable."""
        pass


class StaticCollector(Collector):
    """Collector returning data supplied up front (probe results from elsewhere)."""

    def __init__(self, name: str, data: Optional[Dict[str, Any]], description: str = "",
                 cross_browser_keys: Sequence[str] = ()):
        super().__init__(name, description or f"{name} signal", cross_browser_keys)
        self.data = data

    def collect(self) -> Optional[Dict[str, Any]]:
        return dict(self.data) if self.data is not None else None


class UnimplementedCollector(Collector):
    """Placeholder for a signal with no probe; always fails."""

    def collect(self) -> Dict[str, Any]:
        raise CollectorNotImplemented(f"collect() not implemented for collector \"{self.name}\"")
