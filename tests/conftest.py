"""
VisitPrint Test Fixtures
========================

Shared pytest fixtures for hashing, scoring, persistence, collectors,
the ultrasonic beacon and the submission client.
"""

import pytest
import sys
from pathlib import Path
from unittest.mock import Mock

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture
def test_config(tmp_path):
    """Basic test configuration."""
    return {
        "general": {
            "app_name": "VisitPrint",
            "log_level": "DEBUG",
            "debug": True
        },
        "logging": {
            "file": None
        },
        "server": {
            "endpoint": "http://fp.test/",
            "timeout": 2
        },
        "persistence": {
            "local_db_path": str(tmp_path / "local.db"),
            "origin": "test",
            "cookie_enabled": True,
            "etag_enabled": True
        },
        "observation": {
            "timeout_ms": 200,
            "thresholds": {
                "move": 3,
                "scroll": 2
            }
        },
        "ultrasonic": {
            "repeat_count": 3,
            "level_threshold": 150,
            "realtime": False  # No wall-clock pacing in tests
        },
        "scoring": {
            "threshold": 60,
            "weights": {}
        }
    }


def make_response(status_code=200, json_data=None, headers=None, reason="OK"):
    """Fake requests.Response."""
    response = Mock()
    response.status_code = status_code
    response.reason = reason
    response.headers = headers or {}
    response.json = Mock(return_value=json_data if json_data is not None else {})
    return response


@pytest.fixture
def response_factory():
    """Build fake responses inside a test."""
    return make_response


@pytest.fixture
def mock_session():
    """Mock requests session; tests set get/post return values."""
    session = Mock()
    session.get = Mock(return_value=make_response(304))
    session.post = Mock(return_value=make_response(200, {}))
    return session


@pytest.fixture
def sample_signals():
    """Signal payloads as collected in a regular desktop browser."""
    return [
        {
            "name": "navigator",
            "data": {
                "userAgent": "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 Chrome/126.0 Safari/537.36",
                "platform": "Linux x86_64",
                "language": "de-DE",
                "languages": ["de-DE", "en-US"],
                "hardwareConcurrency": 12,
                "deviceMemory": 16
            }
        },
        {
            "name": "screen",
            "data": {"width": 2560, "height": 1440, "colorDepth": 24, "touchSupport": False}
        },
        {
            "name": "timezone",
            "data": {"timezone": "Europe/Berlin", "timezoneOffset": -120}
        },
        {
            "name": "audio",
            "data": {"sampleSum": 124.04347527516074, "_rendered": "display only"}
        },
        {
            "name": "battery",
            "data": None
        }
    ]


@pytest.fixture
def tor_signals():
    """Signal payloads as collected in a Tor-like hardened browser."""
    return [
        {
            "name": "navigator",
            "data": {
                "userAgent": "Mozilla/5.0 (Windows NT 10.0; rv:109.0) Gecko/20100101 Firefox/115.0",
                "platform": "Win32",
                "language": "en-US",
                "languages": ["en-US"],
                "hardwareConcurrency": 2,
                "deviceMemory": None
            }
        },
        {
            "name": "screen",
            "data": {"width": 1400, "height": 900, "colorDepth": 24}
        },
        {
            "name": "webgl",
            "data": {"supported": True, "vendor": "Mozilla", "renderer": "Mozilla"}
        },
        {
            "name": "canvas",
            "data": {"randomized": True}
        },
        {
            "name": "fonts",
            "data": {"detected": ["Arial", "Courier New"]}
        },
        {
            "name": "timing",
            "data": {"loadTime": 4200, "precisionClamped": True}
        }
    ]
