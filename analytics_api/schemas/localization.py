"""
Pydantic schemas for the localization proxy.

Bodies are deliberately loose: a missing or ill-typed `key`/`content` is
answered with a 400 `{"error": ...}` by the route, not a validation error.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class TextLocalizationRequest(BaseModel):
    """Body for POST /localization: `{"key": "Hello", "language": "fr"}`."""

    model_config = ConfigDict(extra="ignore")

    key: Any = None
    language: Optional[str] = None


class ObjectLocalizationRequest(BaseModel):
    """Body for POST /localization/object."""

    model_config = ConfigDict(extra="ignore")

    content: Any = None
    sourceLocale: Optional[str] = None
    targetLocale: Optional[str] = None


class LocalizationResponse(BaseModel):
    result: Any


class LocalizationError(BaseModel):
    error: str
