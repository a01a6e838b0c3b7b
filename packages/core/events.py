"""Domain types for the repository-to-Solr indexing pipeline.

Immutable dataclasses describing a single pipeline invocation: the raw
notification handed over by a transport, the normalized change event, the
routing decision, the resolved transformation and the document sent to Solr.
None of these outlive the invocation that created them.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Final

# Event and type vocabularies
RESOURCE_DELETION: Final[str] = "http://fedora.info/definitions/v4/event#ResourceDeletion"
AS_NAMESPACE: Final[str] = "https://www.w3.org/ns/activitystreams#"
AS_DELETE: Final[str] = AS_NAMESPACE + "Delete"
INDEXABLE: Final[str] = "http://fedora.info/definitions/v4/indexing#Indexable"

DELETION_MARKERS: Final[frozenset[str]] = frozenset({RESOURCE_DELETION, AS_DELETE})


@dataclass(slots=True, frozen=True)
class RawNotification:
    """Transport-neutral notification as received from a queue or stream."""

    body: str | bytes | None
    headers: Mapping[str, str] = field(default_factory=dict)
    message_id: str | None = None


@dataclass(slots=True, frozen=True)
class ChangeEvent:
    """A normalized repository change notification."""

    resource_uri: str
    event_types: frozenset[str] = frozenset()
    resource_types: frozenset[str] = frozenset()

    @property
    def is_deletion(self) -> bool:
        return not DELETION_MARKERS.isdisjoint(self.event_types)

    @property
    def is_indexable(self) -> bool:
        return INDEXABLE in self.resource_types


class IndexDecision(str, Enum):
    """Routing decision derived from a change event."""

    DELETE = "delete"
    INDEX = "index"
    SKIP = "skip"


class TransformationSource(str, Enum):
    """Where a transformation URL came from."""

    DEFAULT = "default"
    RESOURCE = "resource"


@dataclass(slots=True, frozen=True)
class TransformationSpec:
    """Resolved transformation program for a single resource."""

    url: str
    source: TransformationSource = TransformationSource.DEFAULT

    @classmethod
    def default(cls, url: str) -> TransformationSpec:
        return cls(url=url, source=TransformationSource.DEFAULT)

    @classmethod
    def resource(cls, url: str) -> TransformationSpec:
        return cls(url=url, source=TransformationSource.RESOURCE)

    @property
    def is_url(self) -> bool:
        return self.url.startswith(("http://", "https://"))


@dataclass(slots=True, frozen=True)
class SearchDocument:
    """Transformed, search-ready payload for one resource."""

    resource_uri: str
    payload: bytes
    content_type: str = "application/json"
    commit_within_ms: int = 10000


class PipelineOutcome(str, Enum):
    """Terminal state of a pipeline invocation."""

    SKIPPED = "skipped"
    DELETED = "deleted"
    SENT = "sent"
    FAILED = "failed"
    MALFORMED = "malformed"


__all__ = [
    "AS_DELETE",
    "AS_NAMESPACE",
    "DELETION_MARKERS",
    "INDEXABLE",
    "RESOURCE_DELETION",
    "ChangeEvent",
    "IndexDecision",
    "PipelineOutcome",
    "RawNotification",
    "SearchDocument",
    "TransformationSource",
    "TransformationSpec",
]
