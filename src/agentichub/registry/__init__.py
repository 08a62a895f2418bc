"""
Registry browsing for AgenticHub.

This package fetches MCP server listings from the selectable registries and
collapses duplicate listings.
"""

from .client import RegistryClient, matches_query
from .dedup import compare_versions, deduplicate, normalize_repository_url
from .models import (
    DEFAULT_REGISTRIES,
    PackageRecord,
    PackageRegistryKind,
    RegistryDescriptor,
    ServerRecord,
    TransportKind,
)

__all__ = [
    "RegistryClient",
    "matches_query",
    "compare_versions",
    "deduplicate",
    "normalize_repository_url",
    "DEFAULT_REGISTRIES",
    "PackageRecord",
    "PackageRegistryKind",
    "RegistryDescriptor",
    "ServerRecord",
    "TransportKind",
]
