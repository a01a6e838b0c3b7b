"""Shared pytest fixtures for the indexer test suite.

Provides test configuration and notification factories used across all test
modules.
"""

import json
import os
from typing import Any

import pytest

from packages.common.config import IndexerConfig, get_config
from packages.core.events import RawNotification

REPO = "http://repo"

# ========== Test Environment Setup ==========


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables before any tests run.

    Keeps get_config() away from any developer .env pointing at real services.
    """
    os.environ.setdefault("REDIS_URL", "redis://localhost:6379")
    os.environ.setdefault("FCREPO_BASE_URL", REPO)
    os.environ.setdefault("FILTER_CONTAINERS", f"{REPO}/audit")
    get_config.cache_clear()

    yield

    get_config.cache_clear()


# ========== Configuration Fixtures ==========


@pytest.fixture
def test_config() -> IndexerConfig:
    """Provide test configuration with test service URLs and no redelivery delay.

    Returns:
        IndexerConfig: Configuration instance for testing.
    """
    return IndexerConfig(
        fcrepo_base_url=REPO,
        filter_containers=f"{REPO}/audit",
        fcrepo_default_transform="http://transforms/default",
        fcrepo_check_has_indexing_transformation=False,
        indexing_predicate=False,
        ldpath_service_base_url="http://ldpath/ldpath",
        solr_base_url="http://solr/solr/core",
        solr_commit_within=10000,
        redelivery_delay_ms=0,
        log_level="DEBUG",
    )


# ========== Notification Factories ==========


def make_notification(
    uri: str | None,
    event_type: str | list[str] = "Create",
    resource_types: list[str] | None = None,
    message_id: str | None = "1-0",
) -> RawNotification:
    """Build an ActivityStreams-style notification body."""
    obj: dict[str, Any] = {"type": resource_types or []}
    if uri is not None:
        obj["id"] = uri
    body = {
        "id": "urn:uuid:3c834a8f-5638-4412-aa4b-35ea80416a18",
        "type": event_type,
        "object": obj,
    }
    return RawNotification(body=json.dumps(body), headers={}, message_id=message_id)


@pytest.fixture
def notification_factory():
    """Expose make_notification as a fixture."""
    return make_notification
