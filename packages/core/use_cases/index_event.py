"""IndexEventUseCase - Core orchestration for repository change events.

Pipeline per event:
    normalize -> classify -> {delete | resolve -> transform -> upsert | skip}

Re-index requests run the same pipeline. The use case is a single attempt; the
redelivery envelope around it decides what happens on failure.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol

from packages.core.events import (
    ChangeEvent,
    IndexDecision,
    PipelineOutcome,
    RawNotification,
    SearchDocument,
    TransformationSpec,
)
from packages.ingest.classifier import classify
from packages.ingest.normalizer import normalize_event

logger = logging.getLogger(__name__)


class Resolver(Protocol):
    """Protocol for transformation resolution."""

    async def resolve(self, event: ChangeEvent) -> TransformationSpec | None:
        """Resolve the transformation, or None to skip."""
        ...


class DocumentTransformer(Protocol):
    """Protocol for the transformation service."""

    async def fetch(self, resource_uri: str, spec: TransformationSpec) -> SearchDocument | None:
        """Produce the search document, or None to skip."""
        ...


class SearchSink(Protocol):
    """Protocol for search backend writes."""

    async def upsert(self, document: SearchDocument) -> None:
        """Add or replace a document."""
        ...

    async def delete(self, resource_uri: str) -> None:
        """Delete a document by id."""
        ...


class IndexEventUseCase:
    """Use case routing one change event to the search index."""

    def __init__(
        self,
        resolver: Resolver,
        transformer: DocumentTransformer,
        sink: SearchSink,
        *,
        exclusion_set: Iterable[str] = (),
        indexing_predicate_enabled: bool = False,
    ) -> None:
        """Initialize IndexEventUseCase with dependencies.

        Args:
            resolver: Transformation resolver.
            transformer: Transformation service client.
            sink: Search backend client.
            exclusion_set: Container URIs never processed.
            indexing_predicate_enabled: Only index ``indexing:Indexable`` resources.
        """
        self.resolver = resolver
        self.transformer = transformer
        self.sink = sink
        self.exclusion_set = frozenset(exclusion_set)
        self.indexing_predicate_enabled = indexing_predicate_enabled

    def decide(self, event: ChangeEvent) -> IndexDecision:
        """Classify an event against this pipeline's configuration."""
        return classify(event, self.exclusion_set, self.indexing_predicate_enabled)

    async def handle(self, notification: RawNotification) -> PipelineOutcome:
        """Run one attempt of the pipeline for a live change notification.

        Raises:
            MalformedEventError: If the notification carries no resource URI.
            RetryableIndexingError: If a repository, transformation or Solr call fails.
        """
        event = normalize_event(notification)
        return await self.route(event)

    async def reindex(self, notification: RawNotification) -> PipelineOutcome:
        """Run one attempt of the pipeline for a re-index request."""
        event = normalize_event(notification)
        logger.info("Re-indexing resource", extra={"resource_uri": event.resource_uri})
        return await self.route(event)

    async def route(self, event: ChangeEvent) -> PipelineOutcome:
        """Route a normalized event from classification onwards."""
        decision = self.decide(event)

        if decision is IndexDecision.SKIP:
            logger.info("Skipping resource", extra={"resource_uri": event.resource_uri})
            return PipelineOutcome.SKIPPED

        if decision is IndexDecision.DELETE:
            await self.sink.delete(event.resource_uri)
            return PipelineOutcome.DELETED

        spec = await self.resolver.resolve(event)
        if spec is None:
            return PipelineOutcome.SKIPPED

        document = await self.transformer.fetch(event.resource_uri, spec)
        if document is None:
            return PipelineOutcome.SKIPPED

        await self.sink.upsert(document)
        return PipelineOutcome.SENT


__all__ = ["DocumentTransformer", "IndexEventUseCase", "Resolver", "SearchSink"]
