"""
Real-time broadcasts over RabbitMQ.

Dashboards subscribe to a topic exchange with a binding per channel
(`user:<id>`); each ingested event is announced there as
`{"type": "broadcast", "event": ..., "payload": ...}`.
"""

import json
import logging
from typing import Any, Dict, Optional

import aio_pika
from aio_pika import DeliveryMode, ExchangeType, Message
from aio_pika.abc import AbstractChannel, AbstractConnection, AbstractExchange

from analytics_api.core.policy import FailurePolicy

logger = logging.getLogger(__name__)


# =============================================================================
# GLOBAL CONNECTION
# =============================================================================
# We maintain a single connection that's reused across requests.

_connection: Optional[AbstractConnection] = None
_channel: Optional[AbstractChannel] = None
_exchange: Optional[AbstractExchange] = None


async def connect(url: str, exchange_name: str) -> None:
    """
    Establish connection to RabbitMQ and declare the broadcast exchange.

    Called at application startup.
    """
    global _connection, _channel, _exchange

    logger.info("📡 Connecting to RabbitMQ...")

    _connection = await aio_pika.connect_robust(url)
    _channel = await _connection.channel()
    _exchange = await _channel.declare_exchange(
        exchange_name,
        ExchangeType.TOPIC,
        durable=True,
    )

    logger.info("✅ Connected to RabbitMQ, exchange '%s' ready", exchange_name)


async def disconnect() -> None:
    """
    Close RabbitMQ connection.

    Called at application shutdown.
    """
    global _connection, _channel, _exchange

    _exchange = None

    if _channel:
        await _channel.close()
        _channel = None

    if _connection:
        await _connection.close()
        _connection = None

    logger.info("👋 Disconnected from RabbitMQ")


def user_channel(user_id: str) -> str:
    """Channel name a user's dashboard listens on."""
    return f"user:{user_id}"


async def publish_broadcast(
    channel: str,
    event: str,
    payload: Dict[str, Any],
    timeout_s: Optional[float] = None,
) -> None:
    """
    Publish one broadcast message on `channel`.

    Raises:
        RuntimeError: not connected
    """
    if _exchange is None:
        raise RuntimeError("RabbitMQ not connected")

    body = json.dumps(
        {"type": "broadcast", "event": event, "payload": payload},
        default=str,
    ).encode()

    message = Message(
        body=body,
        delivery_mode=DeliveryMode.NOT_PERSISTENT,  # live updates only
        content_type="application/json",
        type=event,
    )

    await _exchange.publish(message, routing_key=channel, timeout=timeout_s)


class RealtimeNotifier:
    """
    Best-effort notifications to subscribed dashboards.

    Failures are logged and swallowed; by the time we notify, the response
    has already been decided by the insert.
    """

    failure_policy = FailurePolicy.SWALLOW

    def __init__(self, timeout_s: float = 3.0):
        self.timeout_s = timeout_s

    async def send(self, recipient_id: str, event: str, payload: Dict[str, Any]) -> bool:
        """
        Broadcast `event` to the channel of `recipient_id`.

        Returns:
            True if published, False if the broadcast failed
        """
        try:
            await publish_broadcast(
                user_channel(recipient_id),
                event,
                payload,
                timeout_s=self.timeout_s,
            )
        except Exception as e:
            logger.error("Failed to send real-time event to user %s: %s", recipient_id, e)
            return False

        logger.info("Sent real-time %s event to user %s", event, recipient_id)
        return True
