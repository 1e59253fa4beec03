"""
IP geolocation via ipinfo.io.

Also holds client IP extraction, since the two always travel together.
"""

import ipaddress
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional

import httpx

from analytics_api.core.policy import FailurePolicy

logger = logging.getLogger(__name__)

# Checked in order; proxies and CDNs put the real client address here
CLIENT_IP_HEADERS = ("cf-connecting-ip", "x-real-ip", "x-forwarded-for")


@dataclass(frozen=True)
class GeoData:
    """Location attributes for one IP. Every field is nullable."""

    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None
    org: Optional[str] = None
    postal: Optional[str] = None
    loc: Optional[str] = None

    def as_dict(self) -> Dict[str, Optional[str]]:
        return asdict(self)


EMPTY_GEO = GeoData()


def extract_client_ip(headers: Mapping[str, str], peer: Optional[str] = None) -> Optional[str]:
    """
    Find the originating client IP for a request.

    Args:
        headers: Request headers (case-insensitive mapping)
        peer: Socket peer address, used when no proxy header is present

    Returns:
        The first address found, or None
    """
    for name in CLIENT_IP_HEADERS:
        raw = headers.get(name)
        if not raw:
            continue
        # X-Forwarded-For: client, proxy1, proxy2
        candidate = raw.split(",")[0].strip()
        if candidate:
            return candidate
    return peer or None


def is_public_ip(ip: Optional[str]) -> bool:
    """True for a routable address worth looking up."""
    if not ip:
        return False
    try:
        address = ipaddress.ip_address(ip)
    except ValueError:
        return False
    return address.is_global


class GeoLookup:
    """
    Resolve an IP to a location with the ipinfo.io JSON API.

    Lookup errors never propagate: enrichment must not abort ingestion, so
    any failure yields EMPTY_GEO.
    """

    failure_policy = FailurePolicy.DEGRADE

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str = "https://ipinfo.io",
        token: str = "",
        timeout_s: float = 3.0,
    ):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout_s = timeout_s

    async def lookup(self, ip: Optional[str]) -> GeoData:
        if not is_public_ip(ip):
            return EMPTY_GEO

        params = {"token": self.token} if self.token else None
        try:
            response = await self.client.get(
                f"{self.base_url}/{ip}/json",
                params=params,
                timeout=self.timeout_s,
            )
            response.raise_for_status()
            data: Dict[str, Any] = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Geo lookup failed for %s: %s", ip, e)
            return EMPTY_GEO

        if not isinstance(data, dict) or data.get("bogon"):
            return EMPTY_GEO

        return GeoData(
            country=data.get("country"),
            region=data.get("region"),
            city=data.get("city"),
            org=data.get("org"),
            postal=data.get("postal"),
            loc=data.get("loc"),
        )
