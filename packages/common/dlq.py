"""Dead Letter Queue (DLQ) for redelivery-exhausted events.

Redis list holding the raw notification of every event that exhausted its
redeliveries, together with error metadata. Disabled by default: without it an
exhausted event is logged and dropped.
"""

import json
import logging
from datetime import UTC, datetime
from typing import Any

from redis import asyncio as redis

from packages.core.events import RawNotification

logger = logging.getLogger(__name__)


class DeadLetterQueue:
    """Redis-based Dead Letter Queue.

    Features:
    - Stores the original body and headers so the event can be replayed
    - Error metadata (message, timestamp, redelivery count)
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        queue_name: str = "queue:solr.dlq",
    ) -> None:
        """Initialize DeadLetterQueue.

        Args:
            redis_client: Redis client for queue operations.
            queue_name: Redis list receiving failed events.
        """
        self.redis_client = redis_client
        self.queue_name = queue_name

        logger.info("Initialized DeadLetterQueue", extra={"queue_name": queue_name})

    async def send_to_dlq(
        self,
        notification: RawNotification,
        error: str,
        redeliveries: int | None = None,
    ) -> None:
        """Push a failed notification with error metadata.

        Args:
            notification: Original notification as received from the transport.
            error: Error message describing the final failure.
            redeliveries: Number of redeliveries attempted.
        """
        body = notification.body
        if isinstance(body, bytes):
            body = body.decode("utf-8", errors="replace")

        entry: dict[str, Any] = {
            "message_id": notification.message_id,
            "body": body,
            "headers": dict(notification.headers),
            "error": error,
            "redeliveries": redeliveries,
            "failed_at": datetime.now(UTC).isoformat(),
        }

        await self.redis_client.lpush(self.queue_name, json.dumps(entry))

        logger.warning(
            "Sent event to DLQ",
            extra={"message_id": notification.message_id, "error": error},
        )


__all__ = ["DeadLetterQueue"]
