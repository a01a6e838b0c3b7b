"""Background indexing worker.

Consumes repository change notifications and re-index requests from Redis
Streams, runs each through the indexing pipeline inside the redelivery envelope,
and acknowledges the entry once it reaches a terminal outcome.
"""

import asyncio
import logging
import signal
from collections.abc import Awaitable, Callable
from types import FrameType
from typing import Protocol

from redis import asyncio as redis

from packages.common.config import IndexerConfig, get_config
from packages.common.dlq import DeadLetterQueue
from packages.common.factories import make_index_event_use_case, make_redelivery_envelope
from packages.common.logging import setup_logging
from packages.common.resilience import RedeliveryEnvelope
from packages.common.tracing import TracingContext
from packages.core.events import PipelineOutcome, RawNotification
from packages.ingest.adapters.redis_streams_consumer import RedisNotificationConsumer

logger = logging.getLogger(__name__)

Handler = Callable[[RawNotification], Awaitable[PipelineOutcome]]


class NotificationSource(Protocol):
    """Protocol for at-least-once notification transports."""

    async def read(
        self, *, count: int = 1, block_ms: int | None = 5000, pending: bool = False
    ) -> list[RawNotification]:
        ...

    async def ack(self, message_ids: list[str]) -> None:
        ...


class IndexingWorker:
    """Background worker feeding notifications through the indexing pipeline.

    Each poll reads up to ``prefetch_count`` entries and processes them
    concurrently; the pipeline shares no mutable state between events.
    """

    def __init__(
        self,
        envelope: RedeliveryEnvelope,
        *,
        prefetch_count: int = 10,
        block_ms: int | None = 5000,
        dead_letter_queue: DeadLetterQueue | None = None,
    ) -> None:
        """Initialize IndexingWorker.

        Args:
            envelope: Redelivery envelope wrapping every pipeline run.
            prefetch_count: Maximum entries read (and processed concurrently) per poll.
            block_ms: How long a read blocks waiting for entries.
            dead_letter_queue: Optional sink for redelivery-exhausted events.
        """
        self.envelope = envelope
        self.prefetch_count = prefetch_count
        self.block_ms = block_ms
        self.dead_letter_queue = dead_letter_queue
        self._stop_flag = False

        logger.info(
            "Initialized IndexingWorker (prefetch_count=%s, dlq=%s)",
            prefetch_count,
            dead_letter_queue is not None,
        )

    def should_stop(self) -> bool:
        return self._stop_flag

    def signal_stop(self) -> None:
        """Signal worker to stop gracefully."""
        logger.info("Received stop signal")
        self._stop_flag = True

    async def process(self, notification: RawNotification, handler: Handler) -> PipelineOutcome:
        """Run one notification through the envelope and pipeline."""
        event_key = notification.message_id or "unknown"

        async def dead_letter(exc: BaseException) -> None:
            if self.dead_letter_queue is not None:
                await self.dead_letter_queue.send_to_dlq(
                    notification, repr(exc), redeliveries=self.envelope.max_redeliveries
                )

        with TracingContext(notification.message_id):
            outcome = await self.envelope.run(
                lambda: handler(notification),
                event_key=event_key,
                dead_letter=dead_letter,
            )
            logger.info("Event finished", extra={"event_key": event_key, "outcome": outcome.value})
        return outcome

    async def poll_once(
        self, source: NotificationSource, handler: Handler, *, pending: bool = False
    ) -> int:
        """Read one batch from ``source``, process it and ack terminal entries.

        Entries whose processing raised stay unacknowledged and are picked up
        again by the next pending drain.

        Args:
            source: Notification transport.
            handler: Pipeline entry point for this channel.
            pending: Re-read unacknowledged entries instead of new ones.

        Returns:
            Number of notifications acknowledged.

        Raises:
            Does not raise - handles errors internally.
        """
        try:
            notifications = await source.read(
                count=self.prefetch_count, block_ms=self.block_ms, pending=pending
            )
            if not notifications:
                return 0

            results = await asyncio.gather(
                *(self.process(n, handler) for n in notifications),
                return_exceptions=True,
            )

            terminal: list[str] = []
            for notification, result in zip(notifications, results):
                if isinstance(result, BaseException):
                    logger.error(
                        "Event processing aborted",
                        extra={"event_key": notification.message_id, "error": repr(result)},
                    )
                elif notification.message_id:
                    terminal.append(notification.message_id)

            await source.ack(terminal)
            return len(terminal)

        except Exception:
            logger.exception("Error in poll_once")
            return 0

    async def drain_pending(self, source: NotificationSource, handler: Handler) -> int:
        """Reprocess entries left unacknowledged by an earlier run of this consumer.

        Returns:
            Number of pending entries acknowledged.
        """
        drained = 0
        while not self.should_stop():
            acked = await self.poll_once(source, handler, pending=True)
            if acked == 0:
                break
            drained += acked

        if drained:
            logger.info("Drained pending entries", extra={"count": drained})
        return drained

    async def consume(self, source: NotificationSource, handler: Handler) -> None:
        """Drain pending entries, then poll ``source`` for new ones until stopped."""
        await self.drain_pending(source, handler)
        while not self.should_stop():
            await self.poll_once(source, handler)

    async def run(self, channels: list[tuple[NotificationSource, Handler]]) -> None:
        """Run one consume loop per channel until stopped."""
        logger.info("Starting indexing worker loop")

        try:
            await asyncio.gather(*(self.consume(source, handler) for source, handler in channels))
        except asyncio.CancelledError:
            logger.info("Worker cancelled")
        except Exception:
            logger.exception("Worker error")
        finally:
            logger.info("Worker stopped")


async def main(config: IndexerConfig | None = None) -> None:
    """Main entry point for the indexing worker.

    Sets up Redis, the HTTP clients and the pipeline, then runs the worker on
    the change-event stream and the re-index stream until stopped.
    """
    config = config or get_config()
    setup_logging(config.log_level)

    logger.info(f"Connecting to Redis at {config.redis_url}")
    redis_client = redis.from_url(config.redis_url, decode_responses=True)

    use_case, cleanup = make_index_event_use_case(config)

    change_consumer = RedisNotificationConsumer(
        redis_client,
        stream_name=config.input_stream,
        group_name=config.consumer_group,
        consumer_name=config.consumer_name,
    )
    reindex_consumer = RedisNotificationConsumer(
        redis_client,
        stream_name=config.reindex_stream,
        group_name=config.consumer_group,
        consumer_name=config.consumer_name,
    )
    await change_consumer.ensure_group()
    await reindex_consumer.ensure_group()

    dead_letter_queue = None
    if config.dead_letter_enabled:
        dead_letter_queue = DeadLetterQueue(redis_client, queue_name=config.dead_letter_queue)

    worker = IndexingWorker(
        make_redelivery_envelope(config),
        prefetch_count=config.prefetch_count,
        block_ms=config.poll_block_ms,
        dead_letter_queue=dead_letter_queue,
    )

    def handle_signal(sig: int, _frame: FrameType | None) -> None:
        logger.info("Received signal %s", sig)
        worker.signal_stop()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    try:
        await worker.run(
            [
                (change_consumer, use_case.handle),
                (reindex_consumer, use_case.reindex),
            ]
        )
    finally:
        logger.info("Cleaning up resources")
        await cleanup()
        await redis_client.aclose()


if __name__ == "__main__":
    asyncio.run(main())
