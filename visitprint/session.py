#!/usr/bin/env python3
"""
VisitPrint Visit Session
========================

One end-to-end visit:
1. Resolve the visitor ID across storage mechanisms (ETag included)
2. Collect signals and compute the fingerprint
3. Submit to the matching server
4. Store the effective visitor ID server-side via ETag
5. If the server matched us to another visitor (cross-device, cleared
   storage), adopt that ID into every local mechanism

The server is optional: a failed submission leaves the local result intact.

Author: Team VisitPrint
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from loguru import logger

from .client import FingerprintClient, ServerError
from .fingerprinter import Fingerprinter, CollectionResult
from .persistence.etag_storage import ETagStorage
from .persistence.visitor_id_manager import VisitorIdManager, Resolution


@dataclass
class VisitOutcome:
    """Everything learned during one visit"""
    result: CollectionResult
    resolution: Resolution
    verdict: Optional[Dict[str, Any]] = None
    adopted_visitor_id: Optional[str] = None

    @property
    def visitor_id(self) -> str:
        return self.adopted_visitor_id or self.resolution.visitor_id

    def to_dict(self) -> dict:
        return {
            'visitorId': self.visitor_id,
            'resolution': self.resolution.to_dict(),
            'result': self.result.to_dict(),
            'verdict': self.verdict,
            'adoptedVisitorId': self.adopted_visitor_id
        }


class VisitSession:
    """Ties the resolver, fingerprinter and submission client together."""

    def __init__(self, manager: VisitorIdManager, fingerprinter: Fingerprinter,
                 client: Optional[FingerprintClient] = None):
        self.manager = manager
        self.fingerprinter = fingerprinter
        self.client = client

    def _etag_mechanism(self) -> Optional[ETagStorage]:
        for mechanism in self.manager.mechanisms:
            if isinstance(mechanism, ETagStorage):
                return mechanism
        return self.client.etag_storage() if self.client else None

    def run(self) -> VisitOutcome:
        resolution = self.manager.resolve()
        result = self.fingerprinter.collect(visitor_id=resolution.visitor_id)
        outcome = VisitOutcome(result=result, resolution=resolution)

        if self.client is None:
            return outcome

        try:
            outcome.verdict = self.client.submit(result)
        except ServerError as e:
            logger.warning(f"Server rejected submission, keeping local result: {e}")
            return outcome
        except requests.RequestException as e:
            logger.warning(f"Server unreachable, keeping local result: {e}")
            return outcome

        matched = outcome.verdict.get('matchedVisitorId') if isinstance(outcome.verdict, dict) else None
        effective = matched or resolution.visitor_id

        etag = self._etag_mechanism()
        if etag is not None and not etag.write(effective):
            logger.debug("Could not store visitor ID in ETag store")

        if matched and matched != resolution.visitor_id:
            logger.info(f"Server matched visitor {resolution.visitor_id} to existing visitor {matched} "
                        f"(confidence={outcome.verdict.get('confidence')})")
            self.manager.adopt(matched)
            result.visitor_id = matched
            outcome.adopted_visitor_id = matched

        return outcome
