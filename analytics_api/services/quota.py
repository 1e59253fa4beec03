"""
Quota gate backed by the Autumn billing API.

`POST /v1/check` both answers "may this customer use this feature?" and,
with `send_event=true`, records one usage. Calling it twice charges twice.
"""

import logging
from typing import Any, Dict

import httpx

from analytics_api.core.policy import FailurePolicy

logger = logging.getLogger(__name__)


class QuotaGate:
    """
    Ask the entitlement service whether a feature may be consumed.

    Fails open: on any error, including a malformed answer without a
    boolean `allowed`, the event is let through and the error is logged.
    """

    failure_policy = FailurePolicy.ALLOW

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str = "https://api.useautumn.com",
        secret_key: str = "",
        timeout_s: float = 3.0,
    ):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.secret_key = secret_key
        self.timeout_s = timeout_s

    async def allowed(self, feature_id: str, client_id: str) -> bool:
        """
        Check (and record) one use of `feature_id` for `client_id`.

        Returns:
            False only when the service explicitly answers allowed=false
        """
        try:
            response = await self.client.post(
                f"{self.base_url}/v1/check",
                json={
                    "feature_id": feature_id,
                    "customer_id": client_id,
                    "send_event": True,
                },
                headers={"Authorization": f"Bearer {self.secret_key}"},
                timeout=self.timeout_s,
            )
            response.raise_for_status()
            data: Dict[str, Any] = response.json()
            allowed = data.get("allowed") if isinstance(data, dict) else None
            if not isinstance(allowed, bool):
                raise ValueError(f"malformed quota response: {data!r}")
        except Exception as e:  # any failure lets the event through
            logger.error("Failed to check quota for %s: %s", feature_id, e)
            return True

        if not allowed:
            logger.info("Quota exhausted for %s (client %s)", feature_id, client_id)
        return allowed
