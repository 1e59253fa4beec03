"""
FastAPI application entry point.

This is where:
- The FastAPI app is created
- Shared clients and services are built (lifespan)
- Routes are registered
- Middleware and error handlers are configured
"""

import logging
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse

from analytics_api import __version__
from analytics_api.api.routes_ingest import router as ingest_router
from analytics_api.api.routes_localization import is_localization_path
from analytics_api.api.routes_localization import router as localization_router
from analytics_api.core import db
from analytics_api.core.config import Settings, settings
from analytics_api.core.cors import MirrorOriginCORSMiddleware, cors_headers
from analytics_api.core.errors import AnalyticsAPIError
from analytics_api.core.logging import configure_logging
from analytics_api.services import realtime
from analytics_api.services.enrichment import EnrichmentResolver
from analytics_api.services.event_store import ClickHouseEventStore, RetryPolicy
from analytics_api.services.geo import GeoLookup
from analytics_api.services.pipeline import IngestionPipeline
from analytics_api.services.quota import QuotaGate
from analytics_api.services.realtime import RealtimeNotifier
from analytics_api.services.translation import (
    LingoTranslator,
    TranslationCache,
    TranslationService,
)

logger = logging.getLogger(__name__)


# =============================================================================
# SERVICE WIRING
# =============================================================================


def build_pipeline(client: httpx.AsyncClient, cfg: Settings) -> IngestionPipeline:
    """Assemble the ingestion pipeline from settings."""
    return IngestionPipeline(
        quota=QuotaGate(
            client,
            base_url=cfg.autumn_url,
            secret_key=cfg.autumn_secret_key,
            timeout_s=cfg.quota_timeout_s,
        ),
        enricher=EnrichmentResolver(
            GeoLookup(
                client,
                base_url=cfg.ipinfo_url,
                token=cfg.ipinfo_token,
                timeout_s=cfg.geo_timeout_s,
            )
        ),
        store=ClickHouseEventStore(
            client,
            url=cfg.clickhouse_url,
            database=cfg.clickhouse_database,
            user=cfg.clickhouse_user,
            password=cfg.clickhouse_password,
            timeout_s=cfg.store_timeout_s,
            retry=RetryPolicy(
                max_retries=cfg.clickhouse_insert_retries,
                base_delay_s=cfg.clickhouse_retry_backoff_s,
            ),
        ),
        notifier=RealtimeNotifier(timeout_s=cfg.notify_timeout_s),
    )


def build_translation_service(client: httpx.AsyncClient, cfg: Settings) -> TranslationService:
    return TranslationService(
        LingoTranslator(
            client,
            base_url=cfg.lingodotdev_url,
            api_key=cfg.lingodotdev_api_key,
            timeout_s=cfg.translate_timeout_s,
        ),
        TranslationCache(ttl_s=cfg.translation_cache_ttl_s),
    )


# =============================================================================
# LIFESPAN MANAGEMENT
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handle application startup and shutdown.

    Startup: shared HTTP client, broker connection, services on app.state
    Shutdown: close them again in reverse order
    """
    # --- STARTUP ---
    configure_logging(settings.log_level)
    logger.info("🚀 Starting Better Analytics API...")

    client = httpx.AsyncClient()

    try:
        await realtime.connect(settings.rabbitmq_url, settings.realtime_exchange)
    except Exception as e:
        # Notifications are best-effort; ingest without them
        logger.error("Could not connect to RabbitMQ, real-time events disabled: %s", e)

    app.state.pipeline = build_pipeline(client, settings)
    app.state.translation = build_translation_service(client, settings)

    yield

    # --- SHUTDOWN ---
    logger.info("👋 Shutting down Better Analytics API...")
    await realtime.disconnect()
    await client.aclose()
    await db.engine.dispose()


# =============================================================================
# CREATE APPLICATION
# =============================================================================


app = FastAPI(
    title="Better Analytics API",
    description="Ingestion endpoint for error reports, logs and 404 tracking",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(MirrorOriginCORSMiddleware)

app.include_router(ingest_router)
app.include_router(localization_router)


# =============================================================================
# ERROR HANDLERS
# =============================================================================


@app.exception_handler(AnalyticsAPIError)
async def analytics_error_handler(request: Request, exc: AnalyticsAPIError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": "error", "message": exc.message},
    )


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    if first.get("type") == "json_invalid":
        return "Invalid JSON body"
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{field}: {first.get('msg')}" if field else str(first.get("msg"))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _validation_message(exc)
    # Localization clients read `error`, ingestion SDKs read `status`/`message`
    if is_localization_path(request.url.path):
        content = {"error": message}
    else:
        content = {"status": "error", "message": message}
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=content)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Last-resort handler.

    Starlette runs this outside every middleware, so the CORS headers are
    added here rather than by MirrorOriginCORSMiddleware.
    """
    message = str(exc) or "An unknown error occurred"
    logger.error("Unhandled error on %s: %s", request.url.path, message, exc_info=exc)

    origin = request.headers.get("origin")
    headers = cors_headers(origin) if origin else None

    if "Unauthorized" in message:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"status": "error", "message": message},
            headers=headers,
        )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"status": "error", "message": "An internal error occurred."},
        headers=headers,
    )


# =============================================================================
# LIVENESS
# =============================================================================


@app.get("/", response_class=PlainTextResponse, include_in_schema=False)
async def root() -> str:
    return "Better Analytics API"


@app.get("/health", tags=["Health"], summary="Health check")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "analytics_api"}


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    configure_logging(settings.log_level)
    uvicorn.run(
        "analytics_api.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
