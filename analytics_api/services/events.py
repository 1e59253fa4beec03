"""
Event kinds accepted by the ingestion pipeline.

Errors, logs and 404s share an envelope (`id`, `client_id`, `created_at`)
and differ by their payload columns, their quota feature, their table and
the real-time events they fire. Each kind is described once by an
`EventKindSpec`; rows are assembled from the spec rather than by one
hand-written builder per kind.
"""

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from analytics_api.services.enrichment import Enrichment, fill_missing
from analytics_api.services.sanitize import MISSING
from analytics_api.services.timestamps import to_event_timestamp

ENVELOPE_COLUMNS = ("id", "client_id", "created_at")

ENRICHMENT_COLUMNS = (
    "user_agent",
    "ip_address",
    "browser_name",
    "browser_version",
    "os_name",
    "os_version",
    "device_type",
    "country",
    "region",
    "city",
    "org",
    "postal",
    "loc",
)


class EventKind(str, Enum):
    ERROR = "error"
    LOG = "log"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class EventKindSpec:
    kind: EventKind
    feature_id: str
    table: str
    columns: Tuple[str, ...]
    enriched: bool
    timestamp_columns: Tuple[str, ...]
    quota_message: str
    failure_message: str
    # Sent to the authenticated user's channel (summary payload)
    user_event: Optional[str] = None
    user_payload_columns: Tuple[str, ...] = ()
    # Sent to the client_id channel regardless of auth (full row)
    client_event: Optional[str] = None


ERROR_SPEC = EventKindSpec(
    kind=EventKind.ERROR,
    feature_id="error",
    table="errors",
    columns=ENVELOPE_COLUMNS + (
        "error_type",
        "severity",
        "message",
        "stack_trace",
        "source",
        "environment",
        "url",
        "component_stack",
        "session_id",
        "user_id",
        "custom_data",
        "tags",
        "occurrence_count",
        "status",
        "resolved_by",
        "first_occurrence",
        "last_occurrence",
        "resolved_at",
        "updated_at",
    ) + ENRICHMENT_COLUMNS,
    enriched=True,
    timestamp_columns=("first_occurrence", "last_occurrence", "resolved_at"),
    quota_message="Quota exceeded for error ingestion.",
    failure_message="Failed to process error",
    user_event="error_ingested",
    user_payload_columns=(
        "id",
        "message",
        "severity",
        "error_type",
        "source",
        "client_id",
        "created_at",
        "url",
        "browser_name",
        "os_name",
        "device_type",
        "country",
        "city",
    ),
)

LOG_SPEC = EventKindSpec(
    kind=EventKind.LOG,
    feature_id="log",
    table="logs",
    columns=ENVELOPE_COLUMNS + (
        "level",
        "message",
        "source",
        "context",
        "environment",
        "session_id",
        "user_id",
    ),
    enriched=False,
    timestamp_columns=(),
    quota_message="Quota exceeded for log ingestion.",
    failure_message="Failed to process log",
    user_event="log_ingested",
    user_payload_columns=(
        "id",
        "message",
        "level",
        "source",
        "client_id",
        "created_at",
        "context",
        "environment",
        "session_id",
        "user_id",
    ),
    client_event="new-log",
)

NOT_FOUND_SPEC = EventKindSpec(
    kind=EventKind.NOT_FOUND,
    feature_id="404_page_tracking",
    table="not_found_pages",
    columns=ENVELOPE_COLUMNS + (
        "url",
        "path",
        "referrer",
        "session_id",
        "user_id",
    ) + ENRICHMENT_COLUMNS,
    enriched=True,
    timestamp_columns=(),
    quota_message="Quota exceeded for 404 tracking.",
    failure_message="Failed to process 404 event",
    client_event="new-404",
)

EVENT_KINDS: Dict[EventKind, EventKindSpec] = {
    spec.kind: spec for spec in (ERROR_SPEC, LOG_SPEC, NOT_FOUND_SPEC)
}


@dataclass(frozen=True)
class RequestContext:
    """Raw request facts the pipeline needs besides the body."""

    user_agent: str = ""
    client_ip: Optional[str] = None
    user_id: Optional[str] = None  # authenticated dashboard user, if any


def new_event_id() -> str:
    return str(uuid.uuid4())


def build_row(
    spec: EventKindSpec,
    payload: Dict[str, Any],
    created_at: str,
    context: RequestContext,
    enrichment: Optional[Enrichment] = None,
) -> Dict[str, Any]:
    """
    Assemble the row for one event.

    Every declared column is present; anything nobody filled in is left as
    MISSING for the sanitizer. Caller values win over derived ones.

    Args:
        spec: The event kind
        payload: Fields the caller actually sent (unset fields excluded)
        created_at: Ingestion time in event store format
        context: User agent, client IP and auth of the request
        enrichment: Derived fields; required for enriched kinds
    """
    row: Dict[str, Any] = {column: MISSING for column in spec.columns}
    row.update({k: v for k, v in payload.items() if k in row})

    if spec.enriched:
        derived: Dict[str, Any] = {
            "user_agent": context.user_agent,
            "ip_address": context.client_ip,
        }
        if enrichment is not None:
            derived.update(enrichment.as_dict())
        fill_missing(row, derived)

    for column in spec.timestamp_columns:
        row[column] = to_event_timestamp(row[column])

    if spec.kind is EventKind.ERROR:
        _apply_error_defaults(row, created_at, enrichment)

    # Envelope: assigned here, never taken from the caller
    row["id"] = new_event_id()
    row["client_id"] = payload["client_id"]
    row["created_at"] = created_at
    return row


def _apply_error_defaults(
    row: Dict[str, Any],
    created_at: str,
    enrichment: Optional[Enrichment],
) -> None:
    if row["tags"] is MISSING or row["tags"] is None:
        row["tags"] = []
    if row["occurrence_count"] is MISSING or row["occurrence_count"] is None:
        row["occurrence_count"] = 1
    if not row["source"]:
        row["source"] = enrichment.domain if enrichment else MISSING
    row["first_occurrence"] = row["first_occurrence"] or created_at
    row["last_occurrence"] = row["last_occurrence"] or created_at
    row["updated_at"] = created_at


def user_summary(spec: EventKindSpec, row: Dict[str, Any]) -> Dict[str, Any]:
    """The slice of a row sent to the authenticated user's channel."""
    return {column: row.get(column) for column in spec.user_payload_columns}
