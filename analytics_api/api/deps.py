"""
FastAPI dependencies for route handlers.

Authentication here never rejects a request: a missing, unknown or
unverifiable token simply yields an anonymous caller (None).
"""

import asyncio
import logging
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from analytics_api.core.config import settings
from analytics_api.core.db import get_db
from analytics_api.models import User
from analytics_api.services.events import RequestContext
from analytics_api.services.geo import extract_client_ip
from analytics_api.services.pipeline import IngestionPipeline
from analytics_api.services.translation import TranslationService

logger = logging.getLogger(__name__)


# =============================================================================
# ACCESS TOKEN
# =============================================================================


async def get_access_token(request: Request) -> Optional[str]:
    """
    Token from `Authorization: Bearer <token>`, else the body's `accessToken`.
    """
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[len("Bearer "):].strip()
        if token:
            return token

    try:
        body = await request.json()
    except ValueError:
        return None

    if isinstance(body, dict):
        token = body.get("accessToken")
        if isinstance(token, str) and token:
            return token
    return None


async def lookup_user_id(db: AsyncSession, token: str) -> Optional[str]:
    """Resolve an access token to a user id, or None."""
    query = select(User.id).where(User.access_token == token).limit(1)
    result = await asyncio.wait_for(db.execute(query), timeout=settings.auth_timeout_s)
    return result.scalar_one_or_none()


# =============================================================================
# GET CURRENT USER ID
# =============================================================================


async def get_current_user_id(
    token: Optional[str] = Depends(get_access_token),
    db: AsyncSession = Depends(get_db),
) -> Optional[str]:
    """
    Derive the dashboard user behind a request, if any.

    Returns:
        The user id, or None for anonymous requests and lookup failures
    """
    if not token:
        return None

    try:
        return await lookup_user_id(db, token)
    except (SQLAlchemyError, OSError, asyncio.TimeoutError) as e:
        logger.error("Auth error: %s", e)
        return None


async def get_request_context(
    request: Request,
    user_id: Optional[str] = Depends(get_current_user_id),
) -> RequestContext:
    """User agent, client IP and authenticated user for the pipeline."""
    return RequestContext(
        user_agent=request.headers.get("user-agent", ""),
        client_ip=extract_client_ip(
            request.headers,
            request.client.host if request.client else None,
        ),
        user_id=user_id,
    )


# =============================================================================
# SERVICES
# =============================================================================
# Built once in the app lifespan and kept on app.state.


def get_pipeline(request: Request) -> IngestionPipeline:
    return request.app.state.pipeline


def get_translation_service(request: Request) -> TranslationService:
    return request.app.state.translation
