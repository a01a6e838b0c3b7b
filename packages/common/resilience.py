"""Bounded redelivery for pipeline invocations.

Wraps a whole per-event pipeline run with tenacity: on failure the event is
redelivered from the start (normalization included), up to ``max_redeliveries``
times after the first attempt, with a fixed delay in between. Malformed events
are never redelivered. Exhausted events are logged and dropped, or handed to a
dead letter sink when the caller provides one.
"""

import logging
from collections.abc import Awaitable, Callable

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from packages.core.errors import MalformedEventError
from packages.core.events import PipelineOutcome

logger = logging.getLogger(__name__)

DeadLetterSink = Callable[[BaseException], Awaitable[None]]


class RedeliveryEnvelope:
    """Runs a pipeline invocation with bounded redelivery.

    Example:
        >>> envelope = RedeliveryEnvelope(max_redeliveries=10, delay_ms=1000)
        >>> outcome = await envelope.run(lambda: use_case.handle(msg), event_key=msg.message_id)
    """

    def __init__(self, max_redeliveries: int = 10, delay_ms: int = 1000) -> None:
        """Initialize the envelope.

        Args:
            max_redeliveries: Redeliveries allowed after the first attempt.
            delay_ms: Fixed delay before each redelivery.
        """
        if max_redeliveries < 0:
            raise ValueError("max_redeliveries cannot be negative")
        self.max_redeliveries = max_redeliveries
        self.delay_ms = delay_ms

    def _redelivery_logger(self, event_key: str) -> Callable[[RetryCallState], None]:
        def log_redelivery(retry_state: RetryCallState) -> None:
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            logger.warning(
                "Redelivering event",
                extra={
                    "event_key": event_key,
                    "redelivery": retry_state.attempt_number,
                    "max_redeliveries": self.max_redeliveries,
                    "error": repr(exc),
                },
            )

        return log_redelivery

    async def run(
        self,
        operation: Callable[[], Awaitable[PipelineOutcome]],
        *,
        event_key: str,
        dead_letter: DeadLetterSink | None = None,
    ) -> PipelineOutcome:
        """Run ``operation`` until it succeeds or redeliveries are exhausted.

        Args:
            operation: Zero-argument coroutine factory running the full pipeline.
            event_key: Identifier used in log records (message id or URI).
            dead_letter: Optional async sink receiving the final error. Errors
                raised by the sink are logged, not propagated.

        Returns:
            PipelineOutcome: The operation's outcome, MALFORMED, or FAILED.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_redeliveries + 1),
            wait=wait_fixed(self.delay_ms / 1000),
            retry=retry_if_not_exception_type(MalformedEventError),
            before_sleep=self._redelivery_logger(event_key),
            reraise=True,
        )

        outcome = PipelineOutcome.FAILED
        try:
            async for attempt in retrying:
                with attempt:
                    outcome = await operation()
        except MalformedEventError as exc:
            logger.error(
                "Dropping malformed event",
                extra={"event_key": event_key, "error": str(exc)},
            )
            return PipelineOutcome.MALFORMED
        except Exception as exc:
            logger.error(
                "Index Routing Error",
                extra={
                    "event_key": event_key,
                    "redeliveries": self.max_redeliveries,
                    "error": repr(exc),
                },
            )
            if dead_letter is not None:
                try:
                    await dead_letter(exc)
                except Exception as dlq_exc:
                    # Event stays terminal (FAILED) either way
                    logger.error(
                        "Dead letter sink failed",
                        extra={"event_key": event_key, "error": repr(dlq_exc)},
                    )
            return PipelineOutcome.FAILED

        return outcome


__all__ = ["DeadLetterSink", "RedeliveryEnvelope"]
