"""
Pytest configuration and fixtures.

No live services are needed: collaborators are replaced by the fakes
below, and outbound HTTP goes through httpx.MockTransport.
"""

from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest

from analytics_api.core.errors import EventStoreError
from analytics_api.services.enrichment import EnrichmentResolver
from analytics_api.services.geo import GeoData
from analytics_api.services.pipeline import IngestionPipeline
from analytics_api.services.translation import TranslationCache, TranslationService


# =============================================================================
# FAKE COLLABORATORS
# =============================================================================


class FakeQuota:
    def __init__(self, allowed: bool = True):
        self._allowed = allowed
        self.calls: List[Tuple[str, str]] = []

    async def allowed(self, feature_id: str, client_id: str) -> bool:
        self.calls.append((feature_id, client_id))
        return self._allowed


class FakeGeo:
    def __init__(self, geo: Optional[GeoData] = None):
        self.geo = geo or GeoData(
            country="DE",
            region="Berlin",
            city="Berlin",
            org="AS3320 Deutsche Telekom AG",
            postal="10115",
            loc="52.5244,13.4105",
        )
        self.calls: List[Optional[str]] = []

    async def lookup(self, ip: Optional[str]) -> GeoData:
        self.calls.append(ip)
        return self.geo


class FakeStore:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.rows: List[Tuple[str, Dict[str, Any]]] = []

    async def insert(self, table: str, row: Dict[str, Any]) -> None:
        if self.fail:
            raise EventStoreError("connection refused")
        self.rows.append((table, row))


class FakeNotifier:
    def __init__(self):
        self.sent: List[Tuple[str, str, Dict[str, Any]]] = []

    async def send(self, recipient_id: str, event: str, payload: Dict[str, Any]) -> bool:
        self.sent.append((recipient_id, event, payload))
        return True


class FakeTranslator:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: List[Tuple[Any, str, str]] = []

    async def localize_text(self, text: str, source_locale: str, target_locale: str) -> str:
        self.calls.append((text, source_locale, target_locale))
        if self.fail:
            raise httpx.ConnectError("engine unreachable")
        return f"[{target_locale}] {text}"

    async def localize_object(self, content, source_locale: str, target_locale: str):
        self.calls.append((content, source_locale, target_locale))
        if self.fail:
            raise httpx.ConnectError("engine unreachable")
        return {key: f"[{target_locale}] {value}" for key, value in content.items()}


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def quota():
    return FakeQuota()


@pytest.fixture
def geo():
    return FakeGeo()


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def pipeline(quota, geo, store, notifier):
    return IngestionPipeline(
        quota=quota,
        enricher=EnrichmentResolver(geo),
        store=store,
        notifier=notifier,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def translator():
    return FakeTranslator()


@pytest.fixture
def translation(translator, clock):
    return TranslationService(translator, TranslationCache(ttl_s=300, clock=clock))
