"""Reindex command for the indexer CLI.

Queues repository resources on the re-index stream. The worker picks them up
and runs them through the same pipeline as live change events.
"""

import logging
from pathlib import Path

import typer
from rich.console import Console

from packages.common.config import get_config
from packages.core.ports.event_publisher import ReindexPublisher
from packages.ingest.adapters.redis_streams_publisher import (
    RedisReindexPublisher,
    create_redis_client,
)

console = Console()
logger = logging.getLogger(__name__)


def read_uri_file(path: Path) -> list[str]:
    """Read one URI per line, ignoring blanks and ``#`` comments."""
    uris = []
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            uris.append(line)
    return uris


async def reindex_command(
    uris: list[str],
    from_file: Path | None = None,
    publisher: ReindexPublisher | None = None,
) -> int:
    """Publish re-index requests.

    Args:
        uris: Resource URIs (or repository-relative paths).
        from_file: Optional file with additional URIs, one per line.
        publisher: Publisher override (primarily for tests).

    Returns:
        Number of requests published.

    Raises:
        typer.Exit: Exit with code 1 if nothing was given or publishing fails.
    """
    config = get_config()

    targets = list(uris)
    if from_file is not None:
        targets.extend(read_uri_file(from_file))

    targets = [
        uri if uri.startswith(("http://", "https://")) else f"{config.fcrepo_base_url}/{uri.lstrip('/')}"
        for uri in targets
    ]

    if not targets:
        console.print("[red]✗ No resources given to reindex[/red]")
        raise typer.Exit(code=1)

    redis_client = None
    if publisher is None:
        redis_client = await create_redis_client(config.redis_url, decode_responses=True)
        publisher = RedisReindexPublisher(redis_client, stream_name=config.reindex_stream)

    try:
        for uri in targets:
            message_id = await publisher.publish_reindex(uri)
            logger.info("Queued reindex", extra={"resource_uri": uri, "message_id": message_id})
        console.print(f"[green]✓ Queued {len(targets)} resources for reindexing[/green]")
        return len(targets)
    except Exception as err:
        logger.exception("Reindex publishing failed")
        console.print(f"[red]✗ Reindex failed: {err}[/red]")
        raise typer.Exit(code=1) from err
    finally:
        if redis_client is not None:
            await redis_client.aclose()


__all__ = ["read_uri_file", "reindex_command"]
