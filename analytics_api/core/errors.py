"""
Domain exceptions.

Route handlers never build error responses themselves: services raise one of
these and the handlers registered in `main.py` turn it into a JSON body
`{"status": "error", "message": ...}` with the matching status code.
"""

from fastapi import status


class AnalyticsAPIError(Exception):
    """Base class for errors that map directly to an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class QuotaExceededError(AnalyticsAPIError):
    """The entitlement service refused the feature for this client."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS


class IngestionFailedError(AnalyticsAPIError):
    """The event could not be persisted."""


class TranslationError(AnalyticsAPIError):
    """The translation engine failed or returned garbage."""


class CollaboratorError(Exception):
    """An outbound call to a third-party service failed."""

    def __init__(self, service: str, detail: str):
        super().__init__(f"{service}: {detail}")
        self.service = service
        self.detail = detail


class EventStoreError(CollaboratorError):
    """Insert into the event store failed after all retries."""

    def __init__(self, detail: str):
        super().__init__("clickhouse", detail)
