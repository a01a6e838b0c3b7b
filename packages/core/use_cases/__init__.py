"""Core use cases - Application service orchestration.

Use cases orchestrate workflows across adapters without containing framework-specific code.
"""

from __future__ import annotations

from packages.core.use_cases.index_event import (
    DocumentTransformer,
    IndexEventUseCase,
    Resolver,
    SearchSink,
)

__all__ = ["DocumentTransformer", "IndexEventUseCase", "Resolver", "SearchSink"]
