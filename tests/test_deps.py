"""
Tests for access token extraction and user lookup.
"""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from starlette.requests import Request

from analytics_api.api.deps import get_access_token, get_current_user_id


def make_request(headers=None, body: bytes = b"") -> Request:
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/ingest",
        "headers": raw_headers,
        "query_string": b"",
        "client": ("203.0.113.7", 5000),
    }

    async def receive():
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(scope, receive)


class TestGetAccessToken:
    """Tests for get_access_token."""

    @pytest.mark.asyncio
    async def test_bearer_header(self):
        """The Bearer header is read."""
        request = make_request({"Authorization": "Bearer abc123"})

        assert await get_access_token(request) == "abc123"

    @pytest.mark.asyncio
    async def test_header_wins_over_body(self):
        """The header takes precedence over the body field."""
        request = make_request(
            {"Authorization": "Bearer from-header"},
            json.dumps({"accessToken": "from-body"}).encode(),
        )

        assert await get_access_token(request) == "from-header"

    @pytest.mark.asyncio
    async def test_body_field(self):
        """The accessToken body field is read when there is no header."""
        request = make_request(body=json.dumps({"accessToken": "from-body"}).encode())

        assert await get_access_token(request) == "from-body"

    @pytest.mark.asyncio
    async def test_non_bearer_scheme_ignored(self):
        """Other authorization schemes are ignored."""
        request = make_request({"Authorization": "Basic dXNlcjpwYXNz"})

        assert await get_access_token(request) is None

    @pytest.mark.asyncio
    async def test_no_token(self):
        """Non-JSON and non-object bodies carry no token."""
        assert await get_access_token(make_request(body=b"not json")) is None
        assert await get_access_token(make_request(body=b"[1, 2]")) is None


class TestGetCurrentUserId:
    """Tests for get_current_user_id."""

    @pytest.mark.asyncio
    async def test_no_token_skips_lookup(self):
        """Without a token the database is not queried."""
        db = MagicMock()
        db.execute = AsyncMock()

        assert await get_current_user_id(token=None, db=db) is None
        db.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_token_is_anonymous(self):
        """An unknown token is treated as anonymous."""
        result = MagicMock()
        result.scalar_one_or_none.return_value = None
        db = MagicMock()
        db.execute = AsyncMock(return_value=result)

        assert await get_current_user_id(token="nope", db=db) is None

    @pytest.mark.asyncio
    async def test_slow_lookup_is_anonymous(self, monkeypatch):
        """A lookup slower than the auth timeout is treated as anonymous."""
        from analytics_api.core.config import settings

        monkeypatch.setattr(settings, "auth_timeout_s", 0.01)

        async def hang(*args, **kwargs):
            await asyncio.sleep(1)

        db = MagicMock()
        db.execute = hang

        assert await get_current_user_id(token="tok", db=db) is None
