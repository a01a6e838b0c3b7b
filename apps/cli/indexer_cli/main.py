"""Indexer CLI - Typer command-line interface for the Solr indexing service."""

from __future__ import annotations

import logging
from pathlib import Path

import typer

from apps.cli.indexer_cli.utils import async_command

app = typer.Typer(
    name="solr-indexer",
    help="Keep a Solr index in sync with a Fedora repository",
    add_completion=False,
)
logger = logging.getLogger(__name__)


@app.command()
@async_command
async def reindex(
    uris: list[str] = typer.Argument(None, help="Resource URIs or repository paths"),
    from_file: Path | None = typer.Option(
        None, "--from-file", "-f", help="File with one URI per line", exists=True, dir_okay=False
    ),
) -> None:
    """
    Queue resources for re-indexing.

    Examples:
        solr-indexer reindex http://localhost:8080/rest/obj1
        solr-indexer reindex obj1 obj2
        solr-indexer reindex --from-file uris.txt
    """
    from apps.cli.indexer_cli.commands.reindex import reindex_command

    await reindex_command(uris=uris or [], from_file=from_file)


@app.command()
def classify(
    uri: str = typer.Argument(..., help="Resource URI"),
    event_type: list[str] = typer.Option(
        ["Update"], "--event-type", "-e", help="Event type (repeatable)"
    ),
    resource_type: list[str] = typer.Option(
        [], "--resource-type", "-r", help="Resource type (repeatable)"
    ),
) -> None:
    """
    Show the routing decision (index, delete, skip) for a resource.

    Examples:
        solr-indexer classify http://localhost:8080/rest/obj1
        solr-indexer classify http://localhost:8080/rest/obj1 -e Delete
        solr-indexer classify http://localhost:8080/rest/obj1 -r indexing:Indexable
    """
    from apps.cli.indexer_cli.commands.classify import classify_command

    classify_command(uri=uri, event_types=event_type, resource_types=resource_type)


@app.command()
@async_command
async def worker() -> None:
    """
    Run the indexing worker until interrupted.

    Examples:
        solr-indexer worker
    """
    from apps.worker.main import main

    await main()


if __name__ == "__main__":
    app()
