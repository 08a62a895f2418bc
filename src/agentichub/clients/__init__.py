"""AI-agent client detection and MCP configuration file management."""

from .config_files import ClientConfigStore, build_entry, parse_document, strip_jsonc
from .descriptors import (
    CLIENT_DESCRIPTORS,
    ClientCategory,
    ClientDescriptor,
    ClientType,
    ConfigFormat,
    EntryStyle,
    get_descriptor,
)
from .discovery import (
    ClientDiscovery,
    DiscoveredClient,
    InstalledServerRecord,
    merge_installed_servers,
    parse_server_entry,
)

__all__ = [
    "CLIENT_DESCRIPTORS",
    "ClientCategory",
    "ClientConfigStore",
    "ClientDescriptor",
    "ClientDiscovery",
    "ClientType",
    "ConfigFormat",
    "DiscoveredClient",
    "EntryStyle",
    "InstalledServerRecord",
    "build_entry",
    "get_descriptor",
    "merge_installed_servers",
    "parse_document",
    "parse_server_entry",
    "strip_jsonc",
]
