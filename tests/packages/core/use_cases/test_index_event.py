"""Tests for IndexEventUseCase.

Drives the fully-wired pipeline against a recording HTTP transport so every
outbound request can be asserted on.
"""

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from packages.common.config import IndexerConfig
from packages.common.factories import make_index_event_use_case
from packages.core.errors import MalformedEventError, SearchBackendError
from packages.core.events import (
    INDEXABLE,
    IndexDecision,
    PipelineOutcome,
    TransformationSpec,
)
from packages.core.use_cases.index_event import IndexEventUseCase
from packages.ingest.normalizer import normalize_event
from tests.utils.mocks import RecordingTransport, rdf_description

PROGRAM_URL = "http://transforms/default"
LDPATH = "http://ldpath/ldpath"
SOLR_UPDATE = "http://solr/solr/core/update"
SOLR_DOC = b'[{"id": "http://repo/obj1"}]'


def _transport(**extra: httpx.Response) -> RecordingTransport:
    routes: dict[str, httpx.Response] = {
        PROGRAM_URL: httpx.Response(200, text="id = . :: xsd:string ;"),
        LDPATH: httpx.Response(200, content=SOLR_DOC, headers={"Content-Type": "application/json"}),
        SOLR_UPDATE: httpx.Response(200),
    }
    routes.update(extra)
    return RecordingTransport(routes)


class TestScenarios:
    """End-to-end routing through the wired pipeline."""

    @pytest.mark.asyncio
    async def test_create_is_indexed_with_default_transform(
        self, test_config: IndexerConfig, notification_factory
    ) -> None:
        transport = _transport()
        use_case, cleanup = make_index_event_use_case(test_config, transport.client())

        outcome = await use_case.handle(notification_factory("http://repo/obj1", "Create"))
        await cleanup()

        assert outcome is PipelineOutcome.SENT
        assert [r.method for r in transport.requests_to(PROGRAM_URL)] == ["GET"]
        (transform,) = transport.requests_to(LDPATH)
        assert transform.url.params["context"] == "http://repo/obj1"
        (update,) = transport.requests_to(SOLR_UPDATE)
        assert update.method == "POST"
        assert update.url.params["commitWithin"] == "10000"
        assert update.content == SOLR_DOC
        # override check is off, so the repository is never consulted
        assert transport.requests_to("http://repo") == []

    @pytest.mark.asyncio
    async def test_excluded_container_issues_no_requests(
        self, test_config: IndexerConfig, notification_factory
    ) -> None:
        transport = _transport()
        use_case, _ = make_index_event_use_case(test_config, transport.client())
        notification = notification_factory("http://repo/audit/x", "Create")

        assert use_case.decide(normalize_event(notification)) is IndexDecision.SKIP
        assert await use_case.handle(notification) is PipelineOutcome.SKIPPED
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_delete_posts_single_delete(
        self, test_config: IndexerConfig, notification_factory
    ) -> None:
        transport = _transport()
        use_case, _ = make_index_event_use_case(test_config, transport.client())

        outcome = await use_case.handle(notification_factory("http://repo/obj2", "Delete"))

        assert outcome is PipelineOutcome.DELETED
        (request,) = transport.requests
        assert str(request.url.copy_with(query=None)) == SOLR_UPDATE
        assert json.loads(request.content) == {"delete": {"id": "http://repo/obj2"}}

    @pytest.mark.asyncio
    async def test_empty_uri_is_malformed(
        self, test_config: IndexerConfig, notification_factory
    ) -> None:
        transport = _transport()
        use_case, _ = make_index_event_use_case(test_config, transport.client())

        with pytest.raises(MalformedEventError):
            await use_case.handle(notification_factory(""))

        assert transport.requests == []


class TestOverrides:
    """Per-resource transformation overrides."""

    @pytest.mark.asyncio
    async def test_resource_override_is_used(
        self, test_config: IndexerConfig, notification_factory
    ) -> None:
        config = test_config.model_copy(update={"fcrepo_check_has_indexing_transformation": True})
        custom = "http://transforms/custom"
        transport = _transport(
            **{
                custom: httpx.Response(200, text="title = dc:title ;"),
                "http://repo/obj1": httpx.Response(
                    200, content=rdf_description("http://repo/obj1", transformation=custom)
                ),
            }
        )
        use_case, _ = make_index_event_use_case(config, transport.client())

        outcome = await use_case.handle(notification_factory("http://repo/obj1", "Update"))

        assert outcome is PipelineOutcome.SENT
        assert len(transport.requests_to(custom)) == 1
        assert transport.requests_to(PROGRAM_URL) == []
        (transform,) = transport.requests_to(LDPATH)
        assert transform.content == b"title = dc:title ;"

    @pytest.mark.asyncio
    async def test_self_referencing_transformation_is_skipped(
        self, test_config: IndexerConfig, notification_factory
    ) -> None:
        config = test_config.model_copy(update={"fcrepo_check_has_indexing_transformation": True})
        uri = "http://repo/transforms/program"
        transport = _transport(
            **{uri: httpx.Response(200, content=rdf_description(uri, transformation=uri))}
        )
        use_case, _ = make_index_event_use_case(config, transport.client())

        outcome = await use_case.handle(notification_factory(uri, "Update"))

        assert outcome is PipelineOutcome.SKIPPED
        assert transport.requests_to(LDPATH) == []
        assert transport.requests_to(SOLR_UPDATE) == []


class TestIndexingPredicate:
    """Behaviour when only ``indexing:Indexable`` resources are indexed."""

    @pytest.mark.asyncio
    async def test_untagged_resource_is_skipped(
        self, test_config: IndexerConfig, notification_factory
    ) -> None:
        config = test_config.model_copy(update={"indexing_predicate": True})
        transport = _transport()
        use_case, _ = make_index_event_use_case(config, transport.client())

        outcome = await use_case.handle(notification_factory("http://repo/obj1", "Update"))

        assert outcome is PipelineOutcome.SKIPPED
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_untagged_delete_still_deletes(
        self, test_config: IndexerConfig, notification_factory
    ) -> None:
        config = test_config.model_copy(update={"indexing_predicate": True})
        transport = _transport()
        use_case, _ = make_index_event_use_case(config, transport.client())

        outcome = await use_case.handle(notification_factory("http://repo/obj1", "Delete"))

        assert outcome is PipelineOutcome.DELETED

    @pytest.mark.asyncio
    async def test_tagged_resource_is_indexed(
        self, test_config: IndexerConfig, notification_factory
    ) -> None:
        config = test_config.model_copy(update={"indexing_predicate": True})
        transport = _transport()
        use_case, _ = make_index_event_use_case(config, transport.client())

        outcome = await use_case.handle(
            notification_factory("http://repo/obj1", "Update", resource_types=[INDEXABLE])
        )

        assert outcome is PipelineOutcome.SENT

    @pytest.mark.asyncio
    async def test_fetched_metadata_without_tag_is_skipped(
        self, test_config: IndexerConfig, notification_factory
    ) -> None:
        config = test_config.model_copy(
            update={"indexing_predicate": True, "fcrepo_check_has_indexing_transformation": True}
        )
        transport = _transport(
            **{"http://repo/obj1": httpx.Response(200, content=rdf_description("http://repo/obj1"))}
        )
        use_case, _ = make_index_event_use_case(config, transport.client())

        outcome = await use_case.handle(
            notification_factory("http://repo/obj1", "Update", resource_types=[INDEXABLE])
        )

        assert outcome is PipelineOutcome.SKIPPED
        assert len(transport.requests_to("http://repo/obj1")) == 1
        assert transport.requests_to(LDPATH) == []
        assert transport.requests_to(SOLR_UPDATE) == []

    @pytest.mark.asyncio
    async def test_fetched_metadata_with_tag_is_indexed(
        self, test_config: IndexerConfig, notification_factory
    ) -> None:
        config = test_config.model_copy(
            update={"indexing_predicate": True, "fcrepo_check_has_indexing_transformation": True}
        )
        transport = _transport(
            **{
                "http://repo/obj1": httpx.Response(
                    200, content=rdf_description("http://repo/obj1", types=[INDEXABLE])
                )
            }
        )
        use_case, _ = make_index_event_use_case(config, transport.client())

        outcome = await use_case.handle(
            notification_factory("http://repo/obj1", "Update", resource_types=[INDEXABLE])
        )

        assert outcome is PipelineOutcome.SENT
        assert len(transport.requests_to(SOLR_UPDATE)) == 1


class TestCollaboratorFailures:
    """Errors from collaborators propagate to the redelivery envelope."""

    @pytest.mark.asyncio
    async def test_search_backend_error_propagates(
        self, test_config: IndexerConfig, notification_factory
    ) -> None:
        transport = _transport(**{SOLR_UPDATE: httpx.Response(503)})
        use_case, _ = make_index_event_use_case(test_config, transport.client())

        with pytest.raises(SearchBackendError):
            await use_case.handle(notification_factory("http://repo/obj1"))

    @pytest.mark.asyncio
    async def test_reindex_runs_full_pipeline(self, notification_factory) -> None:
        resolver = AsyncMock()
        resolver.resolve = AsyncMock(return_value=TransformationSpec.default(PROGRAM_URL))
        transformer = AsyncMock()
        transformer.fetch = AsyncMock(return_value=None)
        sink = AsyncMock()
        use_case = IndexEventUseCase(resolver, transformer, sink)

        outcome = await use_case.reindex(notification_factory("http://repo/obj1", "Update"))

        assert outcome is PipelineOutcome.SKIPPED
        resolver.resolve.assert_awaited_once()
        transformer.fetch.assert_awaited_once()
        sink.upsert.assert_not_called()
