"""Factory functions for creating fully-wired use cases and dependencies.

Centralizes dependency injection to keep the worker and CLI commands thin.
"""

from collections.abc import Awaitable, Callable

import httpx

from packages.clients.fcrepo_client import FcrepoClient
from packages.clients.ldpath_client import LDPathClient
from packages.clients.solr_client import SolrClient
from packages.common.config import IndexerConfig, get_config
from packages.common.resilience import RedeliveryEnvelope
from packages.core.use_cases.index_event import IndexEventUseCase
from packages.ingest.transformation import TransformationResolver


def make_index_event_use_case(
    config: IndexerConfig | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> tuple[IndexEventUseCase, Callable[[], Awaitable[None]]]:
    """Create a fully-wired IndexEventUseCase with its dependencies.

    All three HTTP collaborators share one ``httpx.AsyncClient`` so connection
    pools are reused across events.

    Args:
        config: Configuration (defaults to the cached environment config).
        http_client: Optional pre-built client (primarily for tests).

    Returns:
        Tuple of (use_case, cleanup_fn) where cleanup_fn must be awaited
        after use to close HTTP connections.

    Example:
        use_case, cleanup = make_index_event_use_case()
        try:
            outcome = await use_case.handle(notification)
        finally:
            await cleanup()
    """
    config = config or get_config()
    owns_client = http_client is None
    client = http_client or httpx.AsyncClient(timeout=config.http_timeout_seconds)

    fcrepo = FcrepoClient(config.fcrepo_base_url, client=client, timeout=config.http_timeout_seconds)
    resolver = TransformationResolver(
        fcrepo,
        default_transform=config.fcrepo_default_transform,
        check_per_resource_override=config.fcrepo_check_has_indexing_transformation,
        indexing_predicate_enabled=config.indexing_predicate,
    )
    ldpath = LDPathClient(
        config.ldpath_service_base_url,
        commit_within_ms=config.solr_commit_within,
        client=client,
        timeout=config.http_timeout_seconds,
    )
    solr = SolrClient(
        config.solr_base_url,
        commit_within_ms=config.solr_commit_within,
        client=client,
        timeout=config.http_timeout_seconds,
    )

    use_case = IndexEventUseCase(
        resolver=resolver,
        transformer=ldpath,
        sink=solr,
        exclusion_set=config.exclusion_set,
        indexing_predicate_enabled=config.indexing_predicate,
    )

    async def cleanup() -> None:
        """Close HTTP connections."""
        if owns_client:
            await client.aclose()

    return use_case, cleanup


def make_redelivery_envelope(config: IndexerConfig | None = None) -> RedeliveryEnvelope:
    """Create the redelivery envelope from configuration."""
    config = config or get_config()
    return RedeliveryEnvelope(
        max_redeliveries=config.max_redeliveries,
        delay_ms=config.redelivery_delay_ms,
    )


__all__ = ["make_index_event_use_case", "make_redelivery_envelope"]
