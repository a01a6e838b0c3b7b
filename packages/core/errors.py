"""Exception hierarchy for the indexing pipeline.

``MalformedEventError`` is fatal for the event that raised it. Everything
deriving from ``RetryableIndexingError`` is redelivered by the retry envelope.
"""


class IndexingError(Exception):
    """Base exception for all indexing pipeline errors."""

    pass


class MalformedEventError(IndexingError):
    """Notification cannot be turned into a change event.

    A malformed message never becomes well-formed, so it is dropped without
    redelivery.
    """

    pass


class RetryableIndexingError(IndexingError):
    """Failure that may succeed when the event is redelivered."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransformationResolutionError(RetryableIndexingError):
    """Repository metadata could not be fetched or parsed."""

    pass


class TransformationServiceError(RetryableIndexingError):
    """Transformation service returned non-2xx or was unreachable."""

    pass


class SearchBackendError(RetryableIndexingError):
    """Solr update or delete call failed."""

    pass


__all__ = [
    "IndexingError",
    "MalformedEventError",
    "RetryableIndexingError",
    "SearchBackendError",
    "TransformationResolutionError",
    "TransformationServiceError",
]
