"""Solr update client.

Adds, replaces and deletes documents through ``/update`` with a commit-within
window instead of hard commits. Both operations are idempotent on Solr's side:
re-sending a document overwrites it and deleting a missing id is a no-op.
"""

import json
import logging

import httpx

from packages.core.errors import SearchBackendError
from packages.core.events import SearchDocument

logger = logging.getLogger(__name__)


def render_delete(resource_uri: str) -> bytes:
    """Render the delete-by-id request body."""
    return json.dumps({"delete": {"id": resource_uri}}).encode("utf-8")


class SolrClient:
    """Async client for the Solr update endpoint.

    Request headers are built per call; nothing from the inbound message is
    forwarded to Solr.
    """

    def __init__(
        self,
        base_url: str,
        *,
        commit_within_ms: int = 10000,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Solr core URL (e.g. http://localhost:8983/solr/openaccess).
            commit_within_ms: Default commit-within window for deletes.
            client: Optional shared httpx.AsyncClient (primarily for tests).
            timeout: Per-request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.update_url = f"{self.base_url}/update"
        self.commit_within_ms = commit_within_ms
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def _post(self, body: bytes, content_type: str, commit_within_ms: int, what: str) -> None:
        params = {"useSystemProperties": "true", "commitWithin": str(commit_within_ms)}
        try:
            response = await self._client.post(
                self.update_url,
                params=params,
                content=body,
                headers={"Content-Type": content_type},
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            logger.warning(f"Solr {what} failed", extra={"error": str(exc)})
            raise SearchBackendError(f"Solr {what} failed: {exc}") from exc

        if not response.is_success:
            logger.warning(
                f"Solr {what} returned error status",
                extra={"status_code": response.status_code, "body": response.text[:500]},
            )
            raise SearchBackendError(
                f"Solr {what} returned {response.status_code}", status_code=response.status_code
            )

    async def upsert(self, document: SearchDocument) -> None:
        """Add or replace a document.

        Raises:
            SearchBackendError: On transport error or non-2xx response.
        """
        logger.info("Indexing Solr object", extra={"resource_uri": document.resource_uri})
        await self._post(
            document.payload, document.content_type, document.commit_within_ms, "update"
        )

    async def delete(self, resource_uri: str) -> None:
        """Delete a document by id.

        Raises:
            SearchBackendError: On transport error or non-2xx response.
        """
        logger.info("Deleting Solr object", extra={"resource_uri": resource_uri})
        await self._post(
            render_delete(resource_uri), "application/json", self.commit_within_ms, "delete"
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client if owned."""
        if self._owns_client:
            await self._client.aclose()


__all__ = ["SolrClient", "render_delete"]
