"""LDPath transformation service client.

Produces the Solr document for a resource by running an LDPath program against
it. Program handling:

- URL program: fetched with GET, then POSTed to the service
- inline program: POSTed to the service as-is
- no program: GET on the service, which applies its own default
"""

import logging

import httpx

from packages.core.errors import TransformationServiceError
from packages.core.events import SearchDocument, TransformationSpec

logger = logging.getLogger(__name__)


class LDPathClient:
    """Async client for the LDPath transformation service."""

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
            base_url: Transformation service endpoint.
            commit_within_ms: Commit window stamped on produced documents.
            client: Optional shared httpx.AsyncClient (primarily for tests).
            timeout: Per-request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.commit_within_ms = commit_within_ms
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def _send(self, request: httpx.Request, what: str) -> httpx.Response:
        try:
            response = await self._client.send(request)
        except httpx.HTTPError as exc:
            logger.warning(f"{what} failed", extra={"url": str(request.url), "error": str(exc)})
            raise TransformationServiceError(f"{what} failed: {exc}") from exc

        logger.info(
            f"{what} response", extra={"url": str(request.url), "status_code": response.status_code}
        )
        if not response.is_success:
            raise TransformationServiceError(
                f"{what} returned {response.status_code}", status_code=response.status_code
            )
        return response

    async def fetch_program(self, program_url: str) -> str:
        """Download an external LDPath program."""
        logger.info("Fetching external LDPath program", extra={"program_url": program_url})
        request = self._client.build_request("GET", program_url, timeout=self.timeout)
        response = await self._send(request, "LDPath program fetch")
        return response.text

    async def fetch(self, resource_uri: str, spec: TransformationSpec) -> SearchDocument | None:
        """Transform a resource into a search document.

        Args:
            resource_uri: Resource to transform (sent as ``context``).
            spec: Resolved transformation.

        Returns:
            SearchDocument, or None when the transformation is the resource itself.

        Raises:
            TransformationServiceError: On transport error or non-2xx response.
        """
        # Don't index the transformation itself
        if spec.url == resource_uri:
            logger.info("Skipping transformation program", extra={"resource_uri": resource_uri})
            return None

        params = {"context": resource_uri}
        program = spec.url.strip()

        if spec.is_url:
            program = await self.fetch_program(program)

        if program:
            request = self._client.build_request(
                "POST",
                self.base_url,
                params=params,
                content=program.encode("utf-8"),
                headers={"Content-Type": "text/plain"},
                timeout=self.timeout,
            )
        else:
            request = self._client.build_request(
                "GET", self.base_url, params=params, timeout=self.timeout
            )

        response = await self._send(request, "LDPath transformation")

        return SearchDocument(
            resource_uri=resource_uri,
            payload=response.content,
            content_type=response.headers.get("Content-Type", "application/json"),
            commit_within_ms=self.commit_within_ms,
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client if owned."""
        if self._owns_client:
            await self._client.aclose()


__all__ = ["LDPathClient"]
