"""Event normalizer for repository change notifications.

Turns a raw notification (message body plus transport headers) into a
``ChangeEvent``. Headers are consulted first, the ActivityStreams JSON body
second. No network I/O happens here.
"""

import json
import logging
from collections.abc import Iterable, Mapping
from typing import Any, Final

from packages.core.errors import MalformedEventError
from packages.core.events import AS_NAMESPACE, ChangeEvent, RawNotification

logger = logging.getLogger(__name__)

# Transport header names
FCREPO_URI: Final[str] = "CamelFcrepoUri"
FCREPO_IDENTIFIER: Final[str] = "org.fcrepo.jms.identifier"
FCREPO_BASE_URL: Final[str] = "org.fcrepo.jms.baseURL"
FCREPO_EVENT_TYPE: Final[str] = "org.fcrepo.jms.eventType"
FCREPO_RESOURCE_TYPE: Final[str] = "org.fcrepo.jms.resourceType"

PREFIXES: Final[dict[str, str]] = {
    "as": AS_NAMESPACE,
    "fedora": "http://fedora.info/definitions/v4/repository#",
    "indexing": "http://fedora.info/definitions/v4/indexing#",
    "ldp": "http://www.w3.org/ns/ldp#",
    "prov": "http://www.w3.org/ns/prov#",
    "rdf": "http://www.w3.org/1999/02/22-rdf-syntax-ns#",
}


def expand_type(value: str) -> str:
    """Expand a compact type name to a full IRI.

    Bare names (``Create``, ``Delete``) belong to the ActivityStreams
    vocabulary; ``prefix:Name`` uses a known prefix; anything else is returned
    unchanged.

    Examples:
        >>> expand_type("Delete")
        'https://www.w3.org/ns/activitystreams#Delete'
        >>> expand_type("indexing:Indexable")
        'http://fedora.info/definitions/v4/indexing#Indexable'
    """
    value = value.strip()
    if "://" in value or value.startswith("urn:"):
        return value
    prefix, sep, local = value.partition(":")
    if sep and prefix in PREFIXES:
        return PREFIXES[prefix] + local
    if not sep:
        return AS_NAMESPACE + value
    return value


def _split_header(value: str | None) -> list[str]:
    if not value:
        return []
    return [token.strip() for token in value.split(",") if token.strip()]


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Iterable):
        return [str(item) for item in value if item]
    return [str(value)]


def _expand_all(values: Iterable[str]) -> frozenset[str]:
    return frozenset(expand_type(v) for v in values if v and v.strip())


def _parse_body(body: str | bytes | None) -> dict[str, Any]:
    if body is None:
        return {}
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    if not body.strip():
        return {}
    try:
        data = json.loads(body)
    except json.JSONDecodeError as exc:
        raise MalformedEventError(f"Event body is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise MalformedEventError("Event body must be a JSON object")
    return data


def _uri_from_headers(headers: Mapping[str, str]) -> str | None:
    uri = headers.get(FCREPO_URI)
    if uri:
        return uri.strip()

    identifier = headers.get(FCREPO_IDENTIFIER)
    if not identifier:
        return None
    base_url = headers.get(FCREPO_BASE_URL, "")
    if base_url and not identifier.startswith(("http://", "https://")):
        return base_url.rstrip("/") + "/" + identifier.lstrip("/")
    return identifier.strip()


def normalize_event(notification: RawNotification) -> ChangeEvent:
    """Parse a raw notification into a ChangeEvent.

    Args:
        notification: Body and headers as delivered by the transport.

    Returns:
        ChangeEvent: The normalized event.

    Raises:
        MalformedEventError: If no resource URI can be found, or the body is
            present but not a JSON object while headers carry no URI.
    """
    headers = notification.headers or {}
    header_uri = _uri_from_headers(headers)

    try:
        body = _parse_body(notification.body)
    except MalformedEventError:
        if not header_uri:
            raise
        # Headers alone are sufficient
        body = {}

    obj = body.get("object") if isinstance(body.get("object"), dict) else None

    resource_uri = header_uri
    if not resource_uri:
        source = obj if obj is not None else body
        candidate = source.get("id") or source.get("@id")
        resource_uri = candidate.strip() if isinstance(candidate, str) else None

    if not resource_uri:
        raise MalformedEventError("Event does not carry a resource URI")

    event_types = _split_header(headers.get(FCREPO_EVENT_TYPE))
    if not event_types:
        event_types = _as_list(body.get("type") or body.get("@type"))

    resource_types = _split_header(headers.get(FCREPO_RESOURCE_TYPE))
    if not resource_types and obj is not None:
        resource_types = _as_list(obj.get("type") or obj.get("@type"))

    event = ChangeEvent(
        resource_uri=resource_uri,
        event_types=_expand_all(event_types),
        resource_types=_expand_all(resource_types),
    )
    logger.debug(
        "Normalized change event",
        extra={
            "resource_uri": event.resource_uri,
            "event_types": sorted(event.event_types),
        },
    )
    return event


__all__ = [
    "FCREPO_BASE_URL",
    "FCREPO_EVENT_TYPE",
    "FCREPO_IDENTIFIER",
    "FCREPO_RESOURCE_TYPE",
    "FCREPO_URI",
    "expand_type",
    "normalize_event",
]
