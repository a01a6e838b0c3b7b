"""Container exclusion filter for repository resource URIs."""

from collections.abc import Iterable


def is_excluded(uri: str, exclusion_set: Iterable[str]) -> bool:
    """Check whether a resource is one of, or lives under, an excluded container.

    Args:
        uri: Resource URI to test.
        exclusion_set: Container URIs to exclude, already normalized by
            ``parse_container_list`` (no trailing slashes).

    Returns:
        True if ``uri`` equals a container or starts with ``<container>/``.
    """
    for container in exclusion_set:
        if uri == container or uri.startswith(container + "/"):
            return True
    return False


__all__ = ["is_excluded"]
