"""Fedora repository metadata client.

Fetches a resource's RDF/XML description (containment triples omitted to bound
the response size) and extracts the fields the indexer routes on:

- ``indexing:hasIndexingTransformation``: per-resource transformation override
- ``rdf:type``: used to confirm the ``indexing:Indexable`` marker
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Final

import httpx

from packages.core.errors import TransformationResolutionError

logger = logging.getLogger(__name__)

RDF_NS: Final[str] = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"
INDEXING_NS: Final[str] = "http://fedora.info/definitions/v4/indexing#"
LDP_NS: Final[str] = "http://www.w3.org/ns/ldp#"

NAMESPACES: Final[dict[str, str]] = {"rdf": RDF_NS, "indexing": INDEXING_NS, "ldp": LDP_NS}

PREFER_OMIT_CONTAINMENT: Final[str] = (
    f'return=representation; omit="{LDP_NS}PreferContainment"'
)

_RDF_ABOUT = f"{{{RDF_NS}}}about"
_RDF_RESOURCE = f"{{{RDF_NS}}}resource"
_RDF_DESCRIPTION = f"{{{RDF_NS}}}Description"


@dataclass(slots=True, frozen=True)
class ResourceMetadata:
    """Routing-relevant fields extracted from a resource description."""

    resource_uri: str
    indexing_transformation: str | None = None
    rdf_types: frozenset[str] = frozenset()

    def has_type(self, type_uri: str) -> bool:
        return type_uri in self.rdf_types


def _expand_tag(tag: str) -> str:
    # "{ns}local" -> "nslocal"
    if tag.startswith("{"):
        ns, _, local = tag[1:].partition("}")
        return ns + local
    return tag


def parse_metadata(resource_uri: str, document: bytes | str) -> ResourceMetadata:
    """Extract routing metadata from an RDF/XML document.

    Only descriptions about ``resource_uri`` are considered when present;
    otherwise every description in the document is used.

    Raises:
        ET.ParseError: If the document is not well-formed XML.
    """
    root = ET.fromstring(document)

    subjects = list(root)
    own = [s for s in subjects if s.get(_RDF_ABOUT) == resource_uri]
    if own:
        subjects = own

    transformation: str | None = None
    rdf_types: set[str] = set()

    for subject in subjects:
        # Typed node elements carry their type in the tag itself
        if subject.tag != _RDF_DESCRIPTION:
            rdf_types.add(_expand_tag(subject.tag))

        for node in subject.findall("rdf:type", NAMESPACES):
            type_uri = node.get(_RDF_RESOURCE) or node.get(_RDF_ABOUT)
            if type_uri:
                rdf_types.add(type_uri)

        if transformation is None:
            for node in subject.findall("indexing:hasIndexingTransformation", NAMESPACES):
                value = node.get(_RDF_RESOURCE) or node.get(_RDF_ABOUT) or (node.text or "")
                if value.strip():
                    transformation = value.strip()
                    break

    return ResourceMetadata(
        resource_uri=resource_uri,
        indexing_transformation=transformation,
        rdf_types=frozenset(rdf_types),
    )


class FcrepoClient:
    """Async client for Fedora resource metadata."""

    def __init__(
        self,
        base_url: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Repository REST endpoint (e.g. http://localhost:8080/rest).
            client: Optional shared httpx.AsyncClient (primarily for tests).
            timeout: Per-request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    def resolve_uri(self, resource: str) -> str:
        """Turn a repository path into a full resource URI."""
        if resource.startswith(("http://", "https://")):
            return resource
        return f"{self.base_url}/{resource.lstrip('/')}"

    async def get_metadata(self, resource_uri: str) -> ResourceMetadata:
        """Fetch and parse the resource description.

        Args:
            resource_uri: Resource URI or repository-relative path.

        Returns:
            ResourceMetadata: Extracted routing fields.

        Raises:
            TransformationResolutionError: On transport error, non-2xx status, or
                an unparseable body.
        """
        uri = self.resolve_uri(resource_uri)
        try:
            response = await self._client.get(
                uri,
                headers={"Accept": "application/rdf+xml", "Prefer": PREFER_OMIT_CONTAINMENT},
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            logger.warning(
                "Repository metadata request failed",
                extra={"resource_uri": uri, "error": str(exc)},
            )
            raise TransformationResolutionError(
                f"Repository metadata request failed for {uri}: {exc}"
            ) from exc

        if not response.is_success:
            logger.warning(
                "Repository returned error status",
                extra={"resource_uri": uri, "status_code": response.status_code},
            )
            raise TransformationResolutionError(
                f"Repository returned {response.status_code} for {uri}",
                status_code=response.status_code,
            )

        try:
            metadata = parse_metadata(uri, response.content)
        except ET.ParseError as exc:
            raise TransformationResolutionError(
                f"Repository metadata for {uri} is not valid RDF/XML: {exc}"
            ) from exc

        logger.debug(
            "Fetched repository metadata",
            extra={
                "resource_uri": uri,
                "indexing_transformation": metadata.indexing_transformation,
            },
        )
        return metadata

    async def aclose(self) -> None:
        """Close the underlying HTTP client if owned."""
        if self._owns_client:
            await self._client.aclose()


__all__ = ["FcrepoClient", "ResourceMetadata", "parse_metadata"]
