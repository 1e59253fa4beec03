"""
Request enrichment: browser/OS/device from the user agent, location from
the client IP, registrable domain from the page URL.
"""

import logging
from dataclasses import asdict, dataclass
from functools import lru_cache
from typing import Any, Dict, Optional

import tldextract
from user_agents import parse as parse_user_agent

from analytics_api.services.geo import EMPTY_GEO, GeoData, GeoLookup
from analytics_api.services.sanitize import MISSING

logger = logging.getLogger(__name__)

DEFAULT_DEVICE_TYPE = "desktop"

# ua-parser reports unknown families as "Other"
_UNKNOWN_FAMILIES = {"", "Other"}


@dataclass(frozen=True)
class Enrichment:
    """Fields derived from the raw request. Everything but device_type is nullable."""

    browser_name: Optional[str] = None
    browser_version: Optional[str] = None
    os_name: Optional[str] = None
    os_version: Optional[str] = None
    device_type: str = DEFAULT_DEVICE_TYPE
    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None
    org: Optional[str] = None
    postal: Optional[str] = None
    loc: Optional[str] = None
    domain: Optional[str] = None

    def as_dict(self) -> Dict[str, Optional[str]]:
        return asdict(self)


def _known(value: Optional[str]) -> Optional[str]:
    if value is None or value in _UNKNOWN_FAMILIES:
        return None
    return value


def parse_device(user_agent: str) -> Dict[str, Optional[str]]:
    """
    Best-effort browser/OS/device parsing.

    Unknown values come back as None, except device_type which falls back
    to "desktop".
    """
    ua = parse_user_agent(user_agent or "")

    if ua.is_tablet:
        device_type = "tablet"
    elif ua.is_mobile:
        device_type = "mobile"
    elif ua.is_bot:
        device_type = "bot"
    else:
        device_type = DEFAULT_DEVICE_TYPE

    browser_name = _known(ua.browser.family)
    os_name = _known(ua.os.family)
    return {
        "browser_name": browser_name,
        "browser_version": (ua.browser.version_string or None) if browser_name else None,
        "os_name": os_name,
        "os_version": (ua.os.version_string or None) if os_name else None,
        "device_type": device_type,
    }


@lru_cache(maxsize=1)
def _domain_extractor() -> tldextract.TLDExtract:
    # Bundled public suffix snapshot only; never fetch the list at runtime
    return tldextract.TLDExtract(suffix_list_urls=(), cache_dir=None)


def parse_domain(url: Optional[str]) -> Optional[str]:
    """
    Registrable domain of a URL ("https://app.example.co.uk/x" -> "example.co.uk").

    Returns None for missing URLs, IP literals and hosts without a public suffix.
    """
    if not url or not isinstance(url, str):
        return None
    try:
        parts = _domain_extractor()(url)
    except Exception as e:  # tldextract raises assorted errors on junk input
        logger.debug("Could not parse domain from %r: %s", url, e)
        return None
    if not parts.domain or not parts.suffix:
        return None
    return f"{parts.domain}.{parts.suffix}"


class EnrichmentResolver:
    """Derive enrichment fields for one request."""

    def __init__(self, geo: GeoLookup):
        self.geo = geo

    async def resolve(
        self,
        user_agent: str,
        client_ip: Optional[str],
        url: Optional[str] = None,
    ) -> Enrichment:
        device = parse_device(user_agent)
        geo: GeoData = await self.geo.lookup(client_ip) if client_ip else EMPTY_GEO
        return Enrichment(
            **device,
            **geo.as_dict(),
            domain=parse_domain(url),
        )


def fill_missing(row: Dict[str, Any], derived: Dict[str, Any]) -> Dict[str, Any]:
    """
    Copy derived values into `row` only where the caller left a gap.

    Caller-supplied values are kept verbatim. Keys of `derived` that the row
    does not declare are ignored.
    """
    for key, value in derived.items():
        if key not in row:
            continue
        current = row[key]
        if current is None or current is MISSING:
            row[key] = value
    return row
