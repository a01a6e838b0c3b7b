"""Indexability classifier.

Decides whether a change event deletes, indexes or skips its resource. The rule
order matters: exclusion beats everything, and deletion is checked before the
``indexing:Indexable`` predicate so that removing a resource that was never
tagged still clears it from the index.
"""

import logging
from collections.abc import Iterable

from packages.core.events import ChangeEvent, IndexDecision
from packages.ingest.url_filter import is_excluded

logger = logging.getLogger(__name__)


def classify(
    event: ChangeEvent,
    exclusion_set: Iterable[str],
    indexing_predicate_enabled: bool,
) -> IndexDecision:
    """Classify a change event.

    Args:
        event: Normalized change event.
        exclusion_set: Excluded container URIs.
        indexing_predicate_enabled: Only index resources typed ``indexing:Indexable``.

    Returns:
        IndexDecision: SKIP, DELETE or INDEX.
    """
    if is_excluded(event.resource_uri, exclusion_set):
        decision = IndexDecision.SKIP
    elif event.is_deletion:
        decision = IndexDecision.DELETE
    elif indexing_predicate_enabled and not event.is_indexable:
        decision = IndexDecision.SKIP
    else:
        decision = IndexDecision.INDEX

    logger.debug(
        "Classified event",
        extra={"resource_uri": event.resource_uri, "decision": decision.value},
    )
    return decision


__all__ = ["classify"]
