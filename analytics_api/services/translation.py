"""
Translation proxy for the Lingo.dev engine, with a short-lived cache.

Dashboards ask for the same UI strings over and over; results are kept for
five minutes per (content, source locale, target locale).
"""

import json
import logging
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

import httpx

from analytics_api.core.errors import TranslationError
from analytics_api.core.policy import FailurePolicy

logger = logging.getLogger(__name__)

Content = Union[str, Dict[str, Any]]


# =============================================================================
# CACHE
# =============================================================================


def make_cache_key(content: Content, source_locale: str, target_locale: str) -> str:
    """
    Composite key for a translation request.

    Strings are used verbatim; objects are serialized with sorted keys so
    that equal objects produce equal keys.
    """
    if isinstance(content, str):
        content_str = content
    else:
        content_str = json.dumps(content, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return f"{content_str}-{source_locale}-{target_locale}"


@dataclass
class _Entry:
    result: Any
    stored_at: float


class TranslationCache:
    """
    Process-wide map with per-entry expiry.

    Expiry is checked on read: an entry whose age has reached `ttl_s` is
    deleted and reported as a miss. There is no background sweep and no
    size cap. Concurrent misses on one key both fetch; the last write wins.
    """

    def __init__(self, ttl_s: float = 300.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_s = ttl_s
        self.clock = clock
        self._entries: Dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self.clock() - entry.stored_at >= self.ttl_s:
                del self._entries[key]
                return None
            return entry.result

    def set(self, key: str, result: Any) -> None:
        with self._lock:
            self._entries[key] = _Entry(result=result, stored_at=self.clock())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# =============================================================================
# ENGINE CLIENT
# =============================================================================


class LingoTranslator:
    """Minimal async client for the Lingo.dev localization engine."""

    failure_policy = FailurePolicy.SURFACE

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str = "https://engine.lingo.dev",
        api_key: str = "",
        timeout_s: float = 30.0,
    ):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_s = timeout_s

    async def _localize(
        self,
        data: Dict[str, Any],
        source_locale: str,
        target_locale: str,
    ) -> Dict[str, Any]:
        response = await self.client.post(
            f"{self.base_url}/i18n",
            json={
                "params": {"workflowId": str(uuid.uuid4()), "fast": True},
                "locale": {"source": source_locale, "target": target_locale},
                "data": data,
            },
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=self.timeout_s,
        )
        response.raise_for_status()
        body = response.json()
        if not isinstance(body, dict):
            raise ValueError(f"unexpected engine response: {body!r}")
        if body.get("data") is None and body.get("error"):
            raise ValueError(f"engine error: {body['error']}")
        return body.get("data") or {}

    async def localize_text(self, text: str, source_locale: str, target_locale: str) -> str:
        data = await self._localize({"text": text}, source_locale, target_locale)
        return data.get("text", "")

    async def localize_object(
        self,
        content: Dict[str, Any],
        source_locale: str,
        target_locale: str,
    ) -> Dict[str, Any]:
        return await self._localize(content, source_locale, target_locale)


# =============================================================================
# SERVICE
# =============================================================================


class TranslationService:
    """Cache in front of the translator. Failures are never cached."""

    def __init__(self, translator: LingoTranslator, cache: TranslationCache):
        self.translator = translator
        self.cache = cache

    async def translate_text(self, text: str, source_locale: str, target_locale: str) -> str:
        return await self._cached(
            text,
            source_locale,
            target_locale,
            lambda: self.translator.localize_text(text, source_locale, target_locale),
            "Translation failed",
        )

    async def translate_object(
        self,
        content: Dict[str, Any],
        source_locale: str,
        target_locale: str,
    ) -> Dict[str, Any]:
        return await self._cached(
            content,
            source_locale,
            target_locale,
            lambda: self.translator.localize_object(content, source_locale, target_locale),
            "Object translation failed",
        )

    async def _cached(self, content, source_locale, target_locale, fetch, failure_message):
        key = make_cache_key(content, source_locale, target_locale)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        try:
            result = await fetch()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("%s (%s -> %s): %s", failure_message, source_locale, target_locale, e)
            raise TranslationError(failure_message) from e

        self.cache.set(key, result)
        return result
