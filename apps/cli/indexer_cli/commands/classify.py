"""Classify command for the indexer CLI.

Shows the routing decision the worker would take for a resource, using the
configured exclusion list and indexable predicate. No network calls.
"""

from rich.console import Console
from rich.table import Table

from packages.common.config import get_config
from packages.core.events import ChangeEvent, IndexDecision
from packages.ingest.classifier import classify
from packages.ingest.normalizer import expand_type

console = Console()


def classify_command(
    uri: str,
    event_types: list[str],
    resource_types: list[str],
) -> IndexDecision:
    """Classify a resource and print the decision."""
    config = get_config()

    event = ChangeEvent(
        resource_uri=uri,
        event_types=frozenset(expand_type(t) for t in event_types),
        resource_types=frozenset(expand_type(t) for t in resource_types),
    )
    decision = classify(event, config.exclusion_set, config.indexing_predicate)

    table = Table(title="Routing decision")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Resource", uri)
    table.add_row("Event types", ", ".join(sorted(event.event_types)) or "-")
    table.add_row("Resource types", ", ".join(sorted(event.resource_types)) or "-")
    table.add_row("Indexable predicate", "on" if config.indexing_predicate else "off")
    table.add_row("Decision", f"[bold]{decision.value}[/bold]")
    console.print(table)

    return decision


__all__ = ["classify_command"]
