"""Client adapters for external systems.

HTTP dependencies (httpx) belong here, not in packages/common.
"""

from packages.clients.fcrepo_client import FcrepoClient, ResourceMetadata
from packages.clients.ldpath_client import LDPathClient
from packages.clients.solr_client import SolrClient

__all__ = ["FcrepoClient", "LDPathClient", "ResourceMetadata", "SolrClient"]
