"""Tests for the indexing worker.

Tests the worker loop that reads notifications from a stream, runs each
through the redelivery envelope and acknowledges it.
"""

from unittest.mock import AsyncMock

import pytest

from apps.worker.main import IndexingWorker
from packages.common.resilience import RedeliveryEnvelope
from packages.core.errors import MalformedEventError, SearchBackendError
from packages.core.events import PipelineOutcome, RawNotification


@pytest.fixture
def mock_source() -> AsyncMock:
    """Mock notification source."""
    source = AsyncMock()
    source.read = AsyncMock(return_value=[])
    return source


@pytest.fixture
def envelope() -> RedeliveryEnvelope:
    return RedeliveryEnvelope(max_redeliveries=2, delay_ms=0)


def _notification(message_id: str) -> RawNotification:
    return RawNotification(
        body=None, headers={"CamelFcrepoUri": "http://repo/obj1"}, message_id=message_id
    )


@pytest.mark.asyncio
async def test_worker_polls_source(mock_source, envelope) -> None:
    """Test worker reads up to prefetch_count entries per poll."""
    worker = IndexingWorker(envelope, prefetch_count=5, block_ms=10)
    handler = AsyncMock()

    processed = await worker.poll_once(mock_source, handler)

    assert processed == 0
    mock_source.read.assert_called_once_with(count=5, block_ms=10, pending=False)
    handler.assert_not_called()
    mock_source.ack.assert_not_called()


@pytest.mark.asyncio
async def test_worker_processes_and_acks_batch(mock_source, envelope) -> None:
    """Test every notification in a batch is handled, then acknowledged."""
    mock_source.read = AsyncMock(return_value=[_notification("1-0"), _notification("2-0")])
    handler = AsyncMock(return_value=PipelineOutcome.SENT)
    worker = IndexingWorker(envelope)

    processed = await worker.poll_once(mock_source, handler)

    assert processed == 2
    assert handler.await_count == 2
    mock_source.ack.assert_called_once_with(["1-0", "2-0"])


@pytest.mark.asyncio
async def test_worker_acks_exhausted_event(mock_source, envelope) -> None:
    """Test a failing event is redelivered, then dropped and acknowledged."""
    mock_source.read = AsyncMock(return_value=[_notification("1-0")])
    handler = AsyncMock(side_effect=SearchBackendError("Solr unavailable", status_code=503))
    worker = IndexingWorker(envelope)

    await worker.poll_once(mock_source, handler)

    assert handler.await_count == 3
    mock_source.ack.assert_called_once_with(["1-0"])


@pytest.mark.asyncio
async def test_worker_sends_exhausted_event_to_dlq(mock_source, envelope) -> None:
    """Test the DLQ receives the original notification when enabled."""
    notification = _notification("1-0")
    mock_source.read = AsyncMock(return_value=[notification])
    handler = AsyncMock(side_effect=SearchBackendError("Solr unavailable", status_code=503))
    dlq = AsyncMock()
    worker = IndexingWorker(envelope, dead_letter_queue=dlq)

    await worker.poll_once(mock_source, handler)

    dlq.send_to_dlq.assert_called_once()
    args, kwargs = dlq.send_to_dlq.call_args
    assert args[0] is notification
    assert "Solr unavailable" in args[1]
    assert kwargs["redeliveries"] == 2


@pytest.mark.asyncio
async def test_worker_drops_malformed_event(mock_source, envelope) -> None:
    """Test malformed events are attempted once and never reach the DLQ."""
    mock_source.read = AsyncMock(return_value=[_notification("1-0")])
    handler = AsyncMock(side_effect=MalformedEventError("no resource URI"))
    dlq = AsyncMock()
    worker = IndexingWorker(envelope, dead_letter_queue=dlq)

    outcome = await worker.process(_notification("1-0"), handler)

    assert outcome is PipelineOutcome.MALFORMED
    assert handler.await_count == 1
    dlq.send_to_dlq.assert_not_called()


@pytest.mark.asyncio
async def test_worker_handles_read_error(mock_source, envelope) -> None:
    """Test worker survives transport errors."""
    mock_source.read = AsyncMock(side_effect=ConnectionError("Redis down"))
    worker = IndexingWorker(envelope)

    assert await worker.poll_once(mock_source, AsyncMock()) == 0


@pytest.mark.asyncio
async def test_worker_stops_on_signal(mock_source, envelope) -> None:
    """Test consume loop exits once stop is signalled."""
    worker = IndexingWorker(envelope)

    async def read_then_stop(**_kwargs):
        worker.signal_stop()
        return []

    mock_source.read = AsyncMock(side_effect=read_then_stop)

    await worker.run([(mock_source, AsyncMock())])

    assert worker.should_stop()
    mock_source.read.assert_called_once()


@pytest.mark.asyncio
async def test_worker_acks_batch_when_dlq_is_down(mock_source) -> None:
    """Test a failing DLQ push does not keep successful entries pending."""
    ok, failing = _notification("1-0"), _notification("2-0")
    mock_source.read = AsyncMock(return_value=[ok, failing])

    async def handler(notification: RawNotification) -> PipelineOutcome:
        if notification is failing:
            raise SearchBackendError("Solr unavailable", status_code=503)
        return PipelineOutcome.SENT

    dlq = AsyncMock()
    dlq.send_to_dlq = AsyncMock(side_effect=ConnectionError("Redis down"))
    worker = IndexingWorker(
        RedeliveryEnvelope(max_redeliveries=0, delay_ms=0), dead_letter_queue=dlq
    )

    acked = await worker.poll_once(mock_source, handler)

    assert acked == 2
    mock_source.ack.assert_called_once_with(["1-0", "2-0"])


@pytest.mark.asyncio
async def test_worker_acks_only_terminal_entries(mock_source, envelope) -> None:
    """Test an entry whose processing aborted stays unacknowledged."""
    mock_source.read = AsyncMock(return_value=[_notification("1-0"), _notification("2-0")])
    worker = IndexingWorker(envelope)
    worker.process = AsyncMock(side_effect=[PipelineOutcome.SENT, RuntimeError("aborted")])

    acked = await worker.poll_once(mock_source, AsyncMock())

    assert acked == 1
    mock_source.ack.assert_called_once_with(["1-0"])


@pytest.mark.asyncio
async def test_worker_drains_pending_before_new_entries(mock_source, envelope) -> None:
    """Test entries left pending by a previous run are reprocessed first."""
    worker = IndexingWorker(envelope)
    reads: list[bool] = []

    async def read(*, count: int, block_ms: int | None, pending: bool) -> list[RawNotification]:
        reads.append(pending)
        if pending and len(reads) == 1:
            return [_notification("1-0")]
        if not pending:
            worker.signal_stop()
        return []

    mock_source.read = AsyncMock(side_effect=read)
    handler = AsyncMock(return_value=PipelineOutcome.SENT)

    await worker.run([(mock_source, handler)])

    assert reads == [True, True, False]
    handler.assert_awaited_once()
    mock_source.ack.assert_called_once_with(["1-0"])
