"""Ports for publishing re-index requests to external transports."""

from __future__ import annotations

from abc import ABC, abstractmethod


class ReindexPublisher(ABC):
    """Publisher interface for re-index requests."""

    @abstractmethod
    async def publish_reindex(self, resource_uri: str) -> str:
        """Queue a resource for re-indexing and return the message id."""


__all__ = ["ReindexPublisher"]
