"""
Localization proxy routes.

Public (no auth derivation). Errors use the `{"error": ...}` body the
dashboard's i18n loader expects.
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from analytics_api.api.deps import get_translation_service
from analytics_api.core.errors import TranslationError
from analytics_api.schemas.localization import (
    LocalizationError,
    LocalizationResponse,
    ObjectLocalizationRequest,
    TextLocalizationRequest,
)
from analytics_api.services.translation import TranslationService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Localization"])

DEFAULT_LOCALE = "en"
LOCALIZATION_PREFIXES = ("/localization", "/api/localization")

ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": LocalizationError},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": LocalizationError},
}


def is_localization_path(path: str) -> bool:
    """True for the localization routes and their /api aliases."""
    return any(path == prefix or path.startswith(prefix + "/") for prefix in LOCALIZATION_PREFIXES)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post(
    "/localization",
    response_model=LocalizationResponse,
    responses=ERROR_RESPONSES,
    summary="Translate a string",
)
@router.post("/api/localization", include_in_schema=False)
async def localize_text(
    body: TextLocalizationRequest,
    translation: TranslationService = Depends(get_translation_service),
):
    """Translate `key` from English into `language` (default English)."""
    logger.info("Received request on /localization endpoint.")

    if not body.key or not isinstance(body.key, str):
        return _error(status.HTTP_400_BAD_REQUEST, "Key is required")

    try:
        result = await translation.translate_text(
            body.key,
            DEFAULT_LOCALE,
            body.language or DEFAULT_LOCALE,
        )
    except TranslationError as e:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, e.message)

    return LocalizationResponse(result=result)


@router.post(
    "/localization/object",
    response_model=LocalizationResponse,
    responses=ERROR_RESPONSES,
    summary="Translate every string in an object",
)
@router.post("/api/localization/object", include_in_schema=False)
async def localize_object(
    body: ObjectLocalizationRequest,
    translation: TranslationService = Depends(get_translation_service),
):
    """Translate an object of strings from `sourceLocale` into `targetLocale`."""
    logger.info("Received request on /localization/object endpoint.")

    if not body.content or not isinstance(body.content, dict):
        return _error(status.HTTP_400_BAD_REQUEST, "Content object is required")

    try:
        result = await translation.translate_object(
            body.content,
            body.sourceLocale or DEFAULT_LOCALE,
            body.targetLocale or DEFAULT_LOCALE,
        )
    except TranslationError as e:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, e.message)

    return LocalizationResponse(result=result)
