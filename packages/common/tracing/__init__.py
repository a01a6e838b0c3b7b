"""Correlation ID tracking for event tracing.

Every change event carries a correlation ID for the lifetime of its pipeline
invocation (including redeliveries). The worker uses the transport message id,
so log lines from the resolver, the transformation call and the Solr call can be
grouped per message. IDs live in a ``ContextVar``, so events processed
concurrently in separate tasks never see each other's ID.
"""

import uuid
from contextvars import ContextVar, Token
from types import TracebackType

# Current correlation ID; None outside any event
_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def generate_correlation_id() -> str:
    """Generate a new correlation ID.

    Used when an event arrives without a transport message id (for example a
    notification built by hand in the CLI).

    Returns:
        str: A new UUID4 correlation ID as a string.
    """
    return str(uuid.uuid4())


def get_correlation_id() -> str | None:
    """Get the correlation ID bound to the current context.

    Returns:
        str | None: The current correlation ID, or None outside an event.

    Example:
        >>> with TracingContext("1700000000000-0"):
        ...     get_correlation_id()
        '1700000000000-0'
    """
    return _correlation_id_var.get()


class TracingContext:
    """Bind a correlation ID to everything logged inside a block.

    Nesting restores the outer ID on exit, and leaving the outermost context
    unbinds it again.

    Example:
        >>> with TracingContext(notification.message_id) as corr_id:
        ...     logger.info("Indexing Solr object")  # record carries corr_id
    """

    def __init__(self, correlation_id: str | None = None) -> None:
        """Initialize the tracing context.

        Args:
            correlation_id: ID to bind, usually the stream message id. A fresh
                UUID is generated when None.
        """
        self.correlation_id = correlation_id
        self._token: Token[str | None] | None = None

    def __enter__(self) -> str:
        """Bind the correlation ID.

        Returns:
            str: The ID bound for this block.
        """
        if self.correlation_id is None:
            self.correlation_id = generate_correlation_id()
        self._token = _correlation_id_var.set(self.correlation_id)
        return self.correlation_id

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Restore whatever ID was bound before this block."""
        if self._token is not None:
            _correlation_id_var.reset(self._token)
            self._token = None


__all__ = ["TracingContext", "generate_correlation_id", "get_correlation_id"]
