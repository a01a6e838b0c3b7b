"""Redis Streams publisher for re-index requests."""

from __future__ import annotations

from typing import Any

from redis import asyncio as redis
from redis.asyncio import Redis

from packages.core.ports.event_publisher import ReindexPublisher
from packages.ingest.normalizer import FCREPO_EVENT_TYPE, FCREPO_URI

REINDEX_EVENT_TYPE = "https://www.w3.org/ns/activitystreams#Update"


class RedisReindexPublisher(ReindexPublisher):
    """Publish re-index requests to a Redis Stream.

    Entries carry the resource URI in the ``CamelFcrepoUri`` header field so the
    normalizer needs no body.
    """

    def __init__(
        self,
        redis_client: Redis,
        stream_name: str = "stream:solr.reindex",
        *,
        maxlen: int | None = 100000,
    ) -> None:
        self.redis_client = redis_client
        self.stream_name = stream_name
        self.maxlen = maxlen

    async def publish_reindex(self, resource_uri: str) -> str:
        payload: dict[str, Any] = {
            FCREPO_URI: resource_uri,
            FCREPO_EVENT_TYPE: REINDEX_EVENT_TYPE,
        }

        message_id = await self.redis_client.xadd(
            name=self.stream_name,
            fields=payload,
            maxlen=self.maxlen,
            approximate=True,
        )
        return message_id.decode() if isinstance(message_id, bytes) else str(message_id)


async def create_redis_client(url: str, *, decode_responses: bool = False) -> Redis:
    """Helper to create a Redis client from URL."""

    return redis.from_url(url, decode_responses=decode_responses)


__all__ = ["REINDEX_EVENT_TYPE", "RedisReindexPublisher", "create_redis_client"]
