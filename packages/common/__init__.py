"""Common utilities for the indexing service.

This package provides reusable utilities like logging, config, tracing,
redelivery and the dead letter queue.

Note: Factory functions are available via direct import to avoid circular dependencies:
    from packages.common.factories import make_index_event_use_case
"""
