"""
Event store writer for ClickHouse.

Rows go through the HTTP interface as `INSERT ... FORMAT JSONEachRow`, one
row per request. Tables are append-only; nothing here updates or deletes.
"""

import asyncio
import json
import logging
import random
from dataclasses import dataclass
from typing import Any, Dict

import httpx

from analytics_api.core.errors import EventStoreError
from analytics_api.core.policy import FailurePolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 2
    base_delay_s: float = 0.2
    max_delay_s: float = 2.0
    jitter: float = 0.25
    retry_on_status: tuple[int, ...] = (408, 429, 500, 502, 503, 504)

    def compute_backoff_s(self, attempt: int) -> float:
        """
        attempt: 1..N
        """
        delay = min(self.base_delay_s * (2 ** max(0, attempt - 1)), self.max_delay_s)
        if self.jitter > 0:
            delay = delay * (1.0 + (random.random() * 2 - 1) * self.jitter)
        return max(0.0, delay)


class ClickHouseEventStore:
    """Append single rows to ClickHouse tables."""

    failure_policy = FailurePolicy.SURFACE

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str = "http://localhost:8123",
        database: str = "default",
        user: str = "default",
        password: str = "",
        timeout_s: float = 10.0,
        retry: RetryPolicy = RetryPolicy(),
    ):
        self.client = client
        self.url = url.rstrip("/")
        self.database = database
        self.user = user
        self.password = password
        self.timeout_s = timeout_s
        self.retry = retry

    def _query(self, table: str) -> str:
        return f"INSERT INTO {self.database}.{table} FORMAT JSONEachRow"

    async def insert(self, table: str, row: Dict[str, Any]) -> None:
        """
        Insert one row, retrying transient failures.

        Raises:
            EventStoreError: ClickHouse rejected the row or stayed unreachable
        """
        body = json.dumps(row, default=str, ensure_ascii=False) + "\n"
        headers = {
            "X-ClickHouse-User": self.user,
            "X-ClickHouse-Key": self.password,
            "Content-Type": "application/x-ndjson",
        }

        attempt = 0
        while True:
            attempt += 1
            try:
                response = await self.client.post(
                    self.url,
                    params={"query": self._query(table)},
                    content=body.encode("utf-8"),
                    headers=headers,
                    timeout=self.timeout_s,
                )
            except httpx.HTTPError as e:
                error = f"transport error: {e}"
                retryable = True
            else:
                if response.is_success:
                    return
                error = f"HTTP {response.status_code}: {response.text.strip()[:500]}"
                retryable = response.status_code in self.retry.retry_on_status

            if not retryable or attempt > self.retry.max_retries:
                raise EventStoreError(f"insert into {table} failed: {error}")

            delay = self.retry.compute_backoff_s(attempt)
            logger.warning(
                "Insert into %s failed (attempt %d), retrying in %.2fs: %s",
                table, attempt, delay, error,
            )
            await asyncio.sleep(delay)
