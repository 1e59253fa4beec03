"""
Tests for user-agent, domain and geo enrichment.
"""

import httpx
import pytest

from analytics_api.core.policy import FailurePolicy
from analytics_api.services.enrichment import (
    EnrichmentResolver,
    fill_missing,
    parse_device,
    parse_domain,
)
from analytics_api.services.geo import (
    EMPTY_GEO,
    GeoLookup,
    extract_client_ip,
    is_public_ip,
)
from analytics_api.services.sanitize import MISSING

CHROME_MAC = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
SAFARI_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_1 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.1 Mobile/15E148 Safari/604.1"
)
SAFARI_IPAD = (
    "Mozilla/5.0 (iPad; CPU OS 16_6 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/16.6 Mobile/15E148 Safari/604.1"
)


# =============================================================================
# USER AGENT
# =============================================================================


class TestParseDevice:
    """Tests for parse_device."""

    def test_desktop_browser(self):
        """A desktop Chrome UA is parsed into browser and OS fields."""
        device = parse_device(CHROME_MAC)

        assert device["browser_name"] == "Chrome"
        assert device["browser_version"].startswith("120")
        assert device["os_name"] == "Mac OS X"
        assert device["device_type"] == "desktop"

    def test_mobile(self):
        """Phones are classified as mobile."""
        device = parse_device(SAFARI_IPHONE)

        assert device["os_name"] == "iOS"
        assert device["device_type"] == "mobile"

    def test_tablet(self):
        """Tablets are classified as tablet."""
        assert parse_device(SAFARI_IPAD)["device_type"] == "tablet"

    def test_unknown_user_agent(self):
        """Nothing detectable: nulls, but device type falls back to desktop."""
        device = parse_device("")

        assert device == {
            "browser_name": None,
            "browser_version": None,
            "os_name": None,
            "os_version": None,
            "device_type": "desktop",
        }


# =============================================================================
# DOMAIN
# =============================================================================


class TestParseDomain:
    """Tests for parse_domain."""

    def test_registrable_domain(self):
        """Subdomains are stripped down to the registrable domain."""
        assert parse_domain("https://app.example.com/checkout?x=1") == "example.com"
        assert parse_domain("https://shop.example.co.uk/") == "example.co.uk"

    def test_missing_or_unparsable(self):
        """Missing, localhost, IP literal and junk URLs give None."""
        assert parse_domain(None) is None
        assert parse_domain("") is None
        assert parse_domain("http://localhost:3000/") is None
        assert parse_domain("http://127.0.0.1/page") is None
        assert parse_domain("not a url") is None


# =============================================================================
# CLIENT IP + GEO
# =============================================================================


class TestClientIp:
    """Tests for client IP extraction."""

    def test_forwarded_for_takes_first_hop(self):
        """Only the first X-Forwarded-For hop counts."""
        headers = {"x-forwarded-for": "203.0.113.7, 10.0.0.1"}

        assert extract_client_ip(headers, "10.0.0.2") == "203.0.113.7"

    def test_header_precedence(self):
        """cf-connecting-ip wins over x-real-ip which wins over x-forwarded-for."""
        headers = {
            "x-forwarded-for": "203.0.113.7",
            "x-real-ip": "198.51.100.4",
            "cf-connecting-ip": "192.0.2.9",
        }

        assert extract_client_ip(headers) == "192.0.2.9"

    def test_falls_back_to_peer(self):
        """The socket peer is used when no header is present."""
        assert extract_client_ip({}, "8.8.8.8") == "8.8.8.8"
        assert extract_client_ip({}) is None

    def test_public_ip(self):
        """Only globally routable addresses are public."""
        assert is_public_ip("8.8.8.8") is True
        assert is_public_ip("10.0.0.1") is False
        assert is_public_ip("127.0.0.1") is False
        assert is_public_ip("garbage") is False
        assert is_public_ip(None) is False


class TestGeoLookup:
    """Tests for GeoLookup."""

    def _lookup(self, handler) -> GeoLookup:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return GeoLookup(client, base_url="https://ipinfo.test", token="tok")

    def test_policy_degrades(self):
        """Geo failures degrade to empty fields."""
        assert GeoLookup.failure_policy is FailurePolicy.DEGRADE

    @pytest.mark.asyncio
    async def test_successful_lookup(self):
        """A successful lookup maps the ipinfo fields."""
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/8.8.8.8/json"
            assert request.url.params["token"] == "tok"
            return httpx.Response(200, json={
                "ip": "8.8.8.8",
                "city": "Mountain View",
                "region": "California",
                "country": "US",
                "loc": "37.4056,-122.0775",
                "org": "AS15169 Google LLC",
                "postal": "94043",
            })

        geo = await self._lookup(handler).lookup("8.8.8.8")

        assert geo.country == "US"
        assert geo.city == "Mountain View"
        assert geo.org == "AS15169 Google LLC"
        assert geo.loc == "37.4056,-122.0775"

    @pytest.mark.asyncio
    async def test_failure_gives_empty_geo(self):
        """Errors give empty geo instead of raising."""
        def handler(request):
            raise httpx.ConnectError("boom")

        assert await self._lookup(handler).lookup("8.8.8.8") == EMPTY_GEO

    @pytest.mark.asyncio
    async def test_private_ip_skips_lookup(self):
        """Private addresses never reach the geo service."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={})

        assert await self._lookup(handler).lookup("192.168.1.10") == EMPTY_GEO
        assert calls == []


# =============================================================================
# RESOLVER
# =============================================================================


class TestEnrichmentResolver:
    """Tests for EnrichmentResolver."""

    @pytest.mark.asyncio
    async def test_resolve_combines_sources(self, geo):
        """Device, geo and domain are combined into one result."""
        enrichment = await EnrichmentResolver(geo).resolve(
            CHROME_MAC, "8.8.8.8", "https://app.example.com/x"
        )

        assert enrichment.browser_name == "Chrome"
        assert enrichment.country == "DE"
        assert enrichment.domain == "example.com"
        assert geo.calls == ["8.8.8.8"]

    @pytest.mark.asyncio
    async def test_no_ip_no_lookup(self, geo):
        """Without a client IP there is no geo lookup."""
        enrichment = await EnrichmentResolver(geo).resolve("", None)

        assert enrichment.country is None
        assert enrichment.device_type == "desktop"
        assert geo.calls == []


class TestFillMissing:
    """Tests for fill_missing."""

    def test_caller_values_win(self):
        """A caller-supplied browser_name is never overwritten."""
        row = {"browser_name": "MyBrowser", "os_name": MISSING, "city": None}

        fill_missing(row, {"browser_name": "Chrome", "os_name": "Linux", "city": "Oslo"})

        assert row == {"browser_name": "MyBrowser", "os_name": "Linux", "city": "Oslo"}

    def test_undeclared_keys_ignored(self):
        """Keys that are not declared columns are not added."""
        row = {"country": MISSING}

        fill_missing(row, {"country": "FR", "domain": "example.com"})

        assert row == {"country": "FR"}
