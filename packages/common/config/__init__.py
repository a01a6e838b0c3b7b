"""Configuration management for the Solr indexing service.

Loads environment variables using pydantic-settings for type-safe configuration.
Repository, transformation service, search backend and transport settings are
defined here. The settings object is frozen: components receive it at
construction time and never mutate it.
"""

import os
from functools import lru_cache
from pathlib import Path
from threading import Lock

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENV_LOADED = False
_ENV_LOCK = Lock()


def _resolve_env_file() -> str | None:
    """Locate the .env file regardless of the current working directory.

    Preference order:
        1. INDEXER_ENV_FILE environment variable (explicit override)
        2. Current working directory (common for local runs)
        3. Ancestors of this file (covers package execution within Docker)
    """
    override = os.getenv("INDEXER_ENV_FILE")
    if override:
        override_path = Path(override).expanduser()
        if override_path.is_file():
            return str(override_path)

    cwd_candidate = Path.cwd() / ".env"
    if cwd_candidate.is_file():
        return str(cwd_candidate)

    for parent in Path(__file__).resolve().parents:
        candidate = parent / ".env"
        if candidate.is_file():
            return str(candidate)

    return None


_DEFAULT_ENV_FILE = _resolve_env_file()


def ensure_env_loaded() -> None:
    """Load environment variables from disk exactly once."""
    global _ENV_LOADED

    with _ENV_LOCK:
        if _ENV_LOADED:
            return

        env_path = _DEFAULT_ENV_FILE or _resolve_env_file()
        if env_path:
            load_dotenv(env_path, override=False)

        _ENV_LOADED = True


ensure_env_loaded()


def parse_container_list(value: str) -> frozenset[str]:
    """Split a comma-delimited container list into a normalized set.

    Entries are stripped, empty entries dropped and trailing slashes removed so
    that ``http://repo/audit/`` and ``http://repo/audit`` exclude the same tree.
    """
    containers = set()
    for token in value.split(","):
        token = token.strip().rstrip("/")
        if token:
            containers.add(token)
    return frozenset(containers)


class IndexerConfig(BaseSettings):
    """Main configuration class for the indexing service.

    Loads all service URLs, routing flags, and tuning parameters from environment
    variables. Uses pydantic-settings for validation and type safety.
    """

    model_config = SettingsConfigDict(
        env_file=_DEFAULT_ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # ========== Redelivery ==========
    max_redeliveries: int = Field(default=10, ge=0)
    redelivery_delay_ms: int = Field(default=1000, ge=0)

    # ========== Routing ==========
    # Comma-delimited list of container URIs. Any resource that matches or is
    # contained in one of them is never processed.
    filter_containers: str = "http://localhost:8080/rest/audit"
    fcrepo_base_url: str = "http://localhost:8080/rest"
    # Overridden per object by indexing:hasIndexingTransformation unless
    # fcrepo_check_has_indexing_transformation is false.
    fcrepo_default_transform: str = "http://0.0.0.0:8181/program"
    fcrepo_check_has_indexing_transformation: bool = True
    indexing_predicate: bool = False

    # ========== Service URLs ==========
    ldpath_service_base_url: str = "http://0.0.0.0:9086/ldpath"
    # Should include the core name.
    solr_base_url: str = "http://0.0.0.0:8983/solr/openaccess"
    solr_commit_within: int = Field(default=10000, ge=0)
    http_timeout_seconds: float = Field(default=30.0, gt=0, le=300)

    # ========== Transport ==========
    redis_url: str = "redis://localhost:6379"
    input_stream: str = "stream:fedora"
    reindex_stream: str = "stream:solr.reindex"
    consumer_group: str = "solr-indexer"
    consumer_name: str = "worker-1"
    prefetch_count: int = Field(default=10, ge=1, le=1000)
    poll_block_ms: int = Field(default=5000, ge=0)

    # ========== Dead Letter Queue ==========
    dead_letter_enabled: bool = False
    dead_letter_queue: str = "queue:solr.dlq"

    # ========== Observability ==========
    log_level: str = "INFO"

    @field_validator("fcrepo_base_url", "ldpath_service_base_url", "solr_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return level

    @property
    def exclusion_set(self) -> frozenset[str]:
        """Container URIs excluded from indexing."""

        return parse_container_list(self.filter_containers)


@lru_cache(maxsize=1)
def get_config() -> IndexerConfig:
    """Return cached Settings instance (thread-safe, process-local).

    Uses lru_cache to ensure a single instance is created and reused.

    Returns:
        IndexerConfig: The configuration instance loaded from environment variables.
    """
    return IndexerConfig()


# Export convenience accessors
__all__ = ["IndexerConfig", "ensure_env_loaded", "get_config", "parse_container_list"]
