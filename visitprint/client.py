#!/usr/bin/env python3
"""
VisitPrint Submission Client
============================

Sends a flattened signal set plus the digest to the matching server and
returns its verdict.

POST {endpoint}/api/fingerprint
  body: flattened signals + fingerprint, deviceId, visitorId
  2xx:  {"matchedVisitorId", "confidence", "matchedSignals", "visitorId", ...}
  else: ServerError carrying the HTTP status

Author: Team VisitPrint
"""

import json
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import requests
from loguru import logger

from .fingerprinter import CollectionResult
from .fingerprinting.canonical_hash import SignalPayload
from .persistence.etag_storage import ETagStorage, is_success
from .persistence.local_storage import LocalStorage


class ServerError(Exception):
    """Non-success response from the matching server."""

    def __init__(self, status: int, message: str = ""):
        self.status = status
        super().__init__(f"Server error: {status}" + (f" ({message})" if message else ""))


def _flatten_audio(data: Mapping, out: Dict[str, Any]) -> None:
    out['audioSum'] = data.get('sampleSum')


def _flatten_timezone(data: Mapping, out: Dict[str, Any]) -> None:
    out['timezone'] = data.get('timezone')
    out['timezoneOffset'] = data.get('timezoneOffset')


def _flatten_navigator(data: Mapping, out: Dict[str, Any]) -> None:
    if data.get('languages') is not None:
        out['languages'] = json.dumps(data['languages'])
    out['hardwareConcurrency'] = data.get('hardwareConcurrency')
    out['deviceMemory'] = data.get('deviceMemory')
    out['platform'] = data.get('platform')


def _flatten_screen(data: Mapping, out: Dict[str, Any]) -> None:
    out['screenWidth'] = data.get('width')
    out['screenHeight'] = data.get('height')
    out['colorDepth'] = data.get('colorDepth')
    out['touchSupport'] = 1 if data.get('touchSupport') else 0


def _flatten_webrtc(data: Mapping, out: Dict[str, Any]) -> None:
    out['localSubnet'] = data.get('localSubnet')


def _flatten_battery(data: Mapping, out: Dict[str, Any]) -> None:
    out['batteryLevel'] = data.get('level')
    out['batteryCharging'] = 1 if data.get('charging') else 0


def _flatten_dns_probe(data: Mapping, out: Dict[str, Any]) -> None:
    out['dnsProbes'] = data.get('probes')


# Signals the server understands; anything else is not submitted
SIGNAL_EXTRACTORS = {
    'audio': _flatten_audio,
    'timezone': _flatten_timezone,
    'navigator': _flatten_navigator,
    'screen': _flatten_screen,
    'webrtc': _flatten_webrtc,
    'battery': _flatten_battery,
    'dns-probe': _flatten_dns_probe,
}


ResultLike = Union[CollectionResult, Mapping[str, Any]]


class FingerprintClient:
    """HTTP client for the fingerprint matching server."""

    def __init__(self, endpoint: str, session: Optional[requests.Session] = None, timeout: float = 10.0):
        """
        Initialize client.

        Args:
            endpoint: Server base URL; exactly one trailing slash is stripped
            session: requests session (shared cookies with the cookie mechanism)
            timeout: Request timeout in seconds
        """
        self.endpoint = endpoint[:-1] if endpoint.endswith('/') else endpoint
        self.session = session or requests.Session()
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: dict, session: Optional[requests.Session] = None) -> "FingerprintClient":
        server_config = config.get("server", {})
        return cls(
            server_config.get("endpoint", "http://localhost:3000"),
            session=session,
            timeout=server_config.get("timeout", 10)
        )

    @staticmethod
    def extract_signals(result: ResultLike) -> Dict[str, Any]:
        """
        Flatten the known subset of signals into a submission body.

        Unknown signal names and failed (null) signals are skipped.
        """
        if isinstance(result, CollectionResult):
            data = {
                'fingerprint': result.fingerprint,
                'deviceId': result.device_id,
                'visitorId': result.visitor_id,
            }
            signals: Iterable = result.signals
        else:
            data = {
                'fingerprint': result.get('fingerprint'),
                'deviceId': result.get('deviceId'),
                'visitorId': result.get('visitorId'),
            }
            signals = result.get('signals') or []

        for signal in signals:
            if isinstance(signal, SignalPayload):
                name, signal_data = signal.name, signal.data
            else:
                name, signal_data = signal.get('name'), signal.get('data')

            extractor = SIGNAL_EXTRACTORS.get(name)
            if extractor is None or not isinstance(signal_data, Mapping):
                continue
            extractor(signal_data, data)

        return data

    def submit(self, result: ResultLike) -> Dict[str, Any]:
        """
        Submit signals and return the server verdict.

        Raises:
            ServerError: Non-2xx response
            requests.RequestException: Network failure
        """
        body = self.extract_signals(result)
        response = self.session.post(
            f"{self.endpoint}/api/fingerprint",
            json=body,
            timeout=self.timeout
        )

        if not is_success(response):
            logger.error(f"Fingerprint submission failed with status {response.status_code}")
            raise ServerError(response.status_code, response.reason or "")

        verdict = response.json()
        if isinstance(verdict, dict):
            logger.info(f"Server verdict: matchedVisitorId={verdict.get('matchedVisitorId')} "
                        f"confidence={verdict.get('confidence')}")
        return verdict

    def etag_storage(self, tag_cache: Optional[LocalStorage] = None) -> ETagStorage:
        """ETag mechanism sharing this client's endpoint and session."""
        return ETagStorage(self.endpoint, session=self.session, tag_cache=tag_cache, timeout=self.timeout)

    def fetch_dns_probes(self) -> List[Any]:
        """DNS probe list for the dns-probe collector, [] if the server is unavailable."""
        try:
            response = self.session.get(f"{self.endpoint}/api/dns-probes", timeout=self.timeout)
            if not is_success(response):
                return []
            return response.json().get('probes') or []
        except (requests.RequestException, ValueError) as e:
            logger.debug(f"Could not fetch DNS probes: {e}")
            return []
