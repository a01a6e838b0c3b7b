"""Ports for core use-cases."""

from __future__ import annotations

from packages.core.ports.event_publisher import ReindexPublisher

__all__ = ["ReindexPublisher"]
