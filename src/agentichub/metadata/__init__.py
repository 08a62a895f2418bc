"""Repository statistics lookup for registry listings."""

from .client import (
    ActivityStatus,
    MetadataClient,
    MetadataRecord,
    normalize_metadata_url,
    parse_timestamp,
)

__all__ = [
    "ActivityStatus",
    "MetadataClient",
    "MetadataRecord",
    "normalize_metadata_url",
    "parse_timestamp",
]
