"""
Event ingestion pipeline.

Per request, strictly in order:

    quota check -> enrich -> normalize -> sanitize -> persist -> notify

A rejected quota check stops before anything is written. A failed insert
fails the request. A failed notification changes nothing.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from analytics_api.core.errors import IngestionFailedError, QuotaExceededError
from analytics_api.services.enrichment import Enrichment, EnrichmentResolver
from analytics_api.services.event_store import ClickHouseEventStore
from analytics_api.services.events import (
    EVENT_KINDS,
    EventKind,
    EventKindSpec,
    RequestContext,
    build_row,
    user_summary,
)
from analytics_api.services.quota import QuotaGate
from analytics_api.services.realtime import RealtimeNotifier
from analytics_api.services.sanitize import replace_missing_with_null
from analytics_api.services.timestamps import now_event_timestamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestResult:
    id: str
    row: Dict[str, Any]


class IngestionPipeline:
    """Turn a validated request body into a stored, announced event."""

    def __init__(
        self,
        quota: QuotaGate,
        enricher: EnrichmentResolver,
        store: ClickHouseEventStore,
        notifier: RealtimeNotifier,
    ):
        self.quota = quota
        self.enricher = enricher
        self.store = store
        self.notifier = notifier

    async def ingest(
        self,
        kind: EventKind,
        payload: Dict[str, Any],
        context: RequestContext,
    ) -> IngestResult:
        """
        Ingest one event.

        Args:
            kind: Which event kind the payload is
            payload: Fields the caller set; must include client_id
            context: User agent, client IP and authenticated user

        Raises:
            QuotaExceededError: The client is out of quota (nothing stored)
            IngestionFailedError: The row could not be persisted
        """
        spec = EVENT_KINDS[kind]
        client_id = payload["client_id"]

        if not await self.quota.allowed(spec.feature_id, client_id):
            raise QuotaExceededError(spec.quota_message)

        enrichment: Optional[Enrichment] = None
        if spec.enriched:
            enrichment = await self.enricher.resolve(
                context.user_agent,
                context.client_ip,
                payload.get("url"),
            )

        row = build_row(spec, payload, now_event_timestamp(), context, enrichment)
        row = replace_missing_with_null(row)

        try:
            await self.store.insert(spec.table, row)
        except Exception as e:
            logger.error("Failed to ingest %s: %s", kind.value, e, exc_info=True)
            raise IngestionFailedError(spec.failure_message) from e

        await self._notify(spec, row, context)
        return IngestResult(id=row["id"], row=row)

    async def _notify(
        self,
        spec: EventKindSpec,
        row: Dict[str, Any],
        context: RequestContext,
    ) -> None:
        if spec.user_event and context.user_id:
            await self.notifier.send(context.user_id, spec.user_event, user_summary(spec, row))

        if spec.client_event:
            await self.notifier.send(row["client_id"], spec.client_event, row)
