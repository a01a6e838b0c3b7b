"""Transformation resolver.

Chooses the LDPath program used to index a resource: the configured default,
or a per-resource override read from ``indexing:hasIndexingTransformation``
when override checking is enabled.
"""

from __future__ import annotations

import logging
from typing import Protocol

from packages.clients.fcrepo_client import ResourceMetadata
from packages.core.events import INDEXABLE, ChangeEvent, TransformationSpec

logger = logging.getLogger(__name__)


class MetadataSource(Protocol):
    """Protocol for repository metadata lookups."""

    async def get_metadata(self, resource_uri: str) -> ResourceMetadata:
        """Fetch routing metadata for a resource."""
        ...


class TransformationResolver:
    """Resolves the transformation program for INDEX decisions."""

    def __init__(
        self,
        metadata_source: MetadataSource,
        *,
        default_transform: str,
        check_per_resource_override: bool = True,
        indexing_predicate_enabled: bool = False,
    ) -> None:
        """Initialize the resolver.

        Args:
            metadata_source: Repository metadata client.
            default_transform: Transformation URL used when no override applies.
            check_per_resource_override: Read hasIndexingTransformation per resource.
            indexing_predicate_enabled: Require indexing:Indexable, confirmed
                against fetched metadata when it is available.
        """
        self.metadata_source = metadata_source
        self.default_transform = default_transform
        self.check_per_resource_override = check_per_resource_override
        self.indexing_predicate_enabled = indexing_predicate_enabled

    async def resolve(self, event: ChangeEvent) -> TransformationSpec | None:
        """Resolve the transformation for a resource.

        Args:
            event: Change event already classified as INDEX.

        Returns:
            TransformationSpec, or None when fetched metadata shows the resource
            is not indexable and the predicate is enforced.

        Raises:
            TransformationResolutionError: If the metadata fetch fails.
        """
        if not self.check_per_resource_override:
            return TransformationSpec.default(self.default_transform)

        metadata = await self.metadata_source.get_metadata(event.resource_uri)

        # Only the fetched rdf:types count here
        if self.indexing_predicate_enabled and not metadata.has_type(INDEXABLE):
            logger.info(
                "Resource is not indexable, skipping",
                extra={"resource_uri": event.resource_uri},
            )
            return None

        override = (metadata.indexing_transformation or "").strip()
        if not override:
            return TransformationSpec.default(self.default_transform)

        logger.info(
            "Using per-resource transformation",
            extra={"resource_uri": event.resource_uri, "transformation": override},
        )
        return TransformationSpec.resource(override)


__all__ = ["MetadataSource", "TransformationResolver"]
