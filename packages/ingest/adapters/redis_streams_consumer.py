"""Redis Streams consumer for repository change notifications."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import ResponseError

from packages.core.events import RawNotification

BODY_FIELD = "body"


def _decode(value: Any) -> Any:
    return value.decode() if isinstance(value, bytes) else value


class RedisNotificationConsumer:
    """Consume notifications from a Redis Stream through a consumer group.

    Each entry's ``body`` field becomes the notification body; every other field
    is treated as a transport header. Delivery is at-least-once: entries stay
    pending until acknowledged.
    """

    def __init__(
        self,
        redis_client: Redis[Any],
        *,
        stream_name: str,
        group_name: str,
        consumer_name: str,
    ) -> None:
        self.redis_client = redis_client
        self.stream_name = stream_name
        self.group_name = group_name
        self.consumer_name = consumer_name

    async def ensure_group(self) -> None:
        """Create the consumer group (and stream) if missing."""

        try:
            await self.redis_client.xgroup_create(
                name=self.stream_name,
                groupname=self.group_name,
                id="0-0",
                mkstream=True,
            )
        except ResponseError as exc:
            if "BUSYGROUP" in str(exc):
                return
            raise

    async def read(
        self,
        *,
        count: int = 1,
        block_ms: int | None = 5000,
        pending: bool = False,
    ) -> list[RawNotification]:
        """Read notifications from the stream.

        Args:
            count: Maximum entries returned.
            block_ms: How long to wait for new entries (ignored for pending reads).
            pending: Re-read entries already delivered to this consumer but never
                acknowledged, instead of new ones.
        """

        response = await self.redis_client.xreadgroup(
            groupname=self.group_name,
            consumername=self.consumer_name,
            streams={self.stream_name: "0" if pending else ">"},
            count=count,
            block=None if pending else block_ms,
        )

        notifications: list[RawNotification] = []

        for stream_name, messages in response or []:
            if _decode(stream_name) != self.stream_name:
                continue
            for message_id, payload in messages:
                # Pending entries trimmed from the stream come back without fields
                fields = {_decode(k): _decode(v) for k, v in (payload or {}).items()}
                body = fields.pop(BODY_FIELD, None)
                notifications.append(
                    RawNotification(body=body, headers=fields, message_id=_decode(message_id))
                )

        return notifications

    async def ack(self, message_ids: Iterable[str]) -> None:
        """Acknowledge processed messages."""

        ids = list(message_ids)
        if not ids:
            return

        await self.redis_client.xack(self.stream_name, self.group_name, *ids)


__all__ = ["BODY_FIELD", "RedisNotificationConsumer"]
