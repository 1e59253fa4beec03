"""
Event ingestion routes.

SDKs post error reports, logs and 404 hits here. Each route hands the body
to the ingestion pipeline; quota and persistence failures are raised as
domain errors and rendered by the handlers in `main.py`.
"""

import logging

from fastapi import APIRouter, Depends, status

from analytics_api.api.deps import get_pipeline, get_request_context
from analytics_api.schemas.events import (
    ErrorIngestBody,
    ErrorResponse,
    IngestResponse,
    LogIngestBody,
    NotFoundIngestBody,
)
from analytics_api.services.events import EventKind, RequestContext
from analytics_api.services.pipeline import IngestionPipeline

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Ingestion"])

ERROR_RESPONSES = {
    status.HTTP_429_TOO_MANY_REQUESTS: {"model": ErrorResponse, "description": "Quota exceeded"},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse, "description": "Processing failed"},
}


@router.post(
    "/ingest",
    response_model=IngestResponse,
    responses=ERROR_RESPONSES,
    summary="Ingest an error report",
)
async def ingest_error(
    body: ErrorIngestBody,
    context: RequestContext = Depends(get_request_context),
    pipeline: IngestionPipeline = Depends(get_pipeline),
) -> IngestResponse:
    """
    Store an error report enriched with browser, OS, device and location.

    Example:
    ```
    curl -X POST http://localhost:4000/ingest \
      -H "Authorization: Bearer <access token>" \
      -H "Content-Type: application/json" \
      -d '{"client_id": "c1", "message": "boom", "url": "https://example.com/a"}'
    ```
    """
    logger.info("Received request on /ingest endpoint.")
    result = await pipeline.ingest(EventKind.ERROR, body.stored_fields(), context)
    return IngestResponse(id=result.id)


@router.post(
    "/log",
    response_model=IngestResponse,
    responses=ERROR_RESPONSES,
    summary="Ingest a log line",
)
async def ingest_log(
    body: LogIngestBody,
    context: RequestContext = Depends(get_request_context),
    pipeline: IngestionPipeline = Depends(get_pipeline),
) -> IngestResponse:
    """Store a log line and broadcast it on the client's channel."""
    logger.info("Received request on /log endpoint.")
    result = await pipeline.ingest(EventKind.LOG, body.stored_fields(), context)
    return IngestResponse(id=result.id)


@router.post(
    "/track-404",
    response_model=IngestResponse,
    responses=ERROR_RESPONSES,
    summary="Track a page-not-found hit",
)
async def track_not_found(
    body: NotFoundIngestBody,
    context: RequestContext = Depends(get_request_context),
    pipeline: IngestionPipeline = Depends(get_pipeline),
) -> IngestResponse:
    """Store a 404 hit with location and device info."""
    logger.info("Received request on /track-404 endpoint.")
    result = await pipeline.ingest(EventKind.NOT_FOUND, body.stored_fields(), context)
    return IngestResponse(id=result.id)
