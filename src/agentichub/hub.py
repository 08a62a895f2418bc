"""
Application state for AgenticHub.

HubState owns the registry, metadata, skills and client services, runs the
independent initial loads concurrently and exposes the filtered and sorted
projections the front ends display.
"""

import asyncio
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

import httpx
import structlog

from .clients.config_files import ClientConfigStore
from .clients.descriptors import ClientType
from .clients.discovery import (
    ClientDiscovery,
    DiscoveredClient,
    InstalledServerRecord,
    merge_installed_servers,
)
from .config.loader import HubSettings
from .errors import HubError, HubErrorCode, load_failed
from .http import create_http_client
from .metadata.client import MetadataClient, MetadataRecord
from .registry.client import RegistryClient, matches_query
from .registry.models import (
    PackageRegistryKind,
    RegistryDescriptor,
    ServerRecord,
)
from .skills.client import SKILL_PROVIDERS, SkillRecord, SkillsClient

logger = structlog.get_logger(__name__)

_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


class SortOption(str, Enum):
    NAME = "name"
    STARS = "stars"
    RECENTLY_UPDATED = "recent"


MetadataLookup = Callable[[ServerRecord], MetadataRecord | None]


def filter_servers(
    records: Iterable[ServerRecord],
    query: str = "",
    package_kind: PackageRegistryKind | None = None,
    sort: SortOption = SortOption.STARS,
    metadata_lookup: MetadataLookup | None = None,
) -> list[ServerRecord]:
    """
    Filter and sort registry listings.

    Args:
        records: Listings to project
        query: Case-insensitive substring over name, description and display name
        package_kind: Keep only servers offering a package of this kind
        sort: Ordering; every ordering falls back to display name on ties
        metadata_lookup: Source of stars and last-commit dates

    Returns:
        New sorted list
    """
    lookup = metadata_lookup or (lambda server: None)

    selected = [
        server
        for server in records
        if matches_query(server, query)
        and (package_kind is None or server.has_package_kind(package_kind))
    ]

    def name_key(server: ServerRecord) -> str:
        return server.display_name.casefold()

    # Stable sorts: order by the tiebreak first, then by the primary key
    selected.sort(key=name_key)
    if sort == SortOption.STARS:
        selected.sort(key=lambda s: _stars(lookup(s)), reverse=True)
    elif sort == SortOption.RECENTLY_UPDATED:
        selected.sort(key=lambda s: _last_commit(lookup(s)), reverse=True)
    return selected


def _stars(metadata: MetadataRecord | None) -> int:
    return metadata.stars if metadata else 0


def _last_commit(metadata: MetadataRecord | None) -> datetime:
    if metadata is None or metadata.last_commit_at is None:
        return _EARLIEST
    return metadata.last_commit_at


def server_key(server: ServerRecord) -> str:
    """Config entry name for a listing: lowercased display name, dashed."""
    return server.display_name.lower().replace(" ", "-").replace("/", "-")


def launch_config(
    server: ServerRecord,
) -> tuple[str, list[str], dict[str, str] | None] | None:
    """
    Derive the launcher invocation for a listing's primary package.

    Returns:
        ``(command, args, env)`` with placeholder values for the declared
        environment variables, or None when the listing has no package
    """
    package = server.primary_package
    if package is None:
        return None

    kind = package.registry_kind
    if kind == PackageRegistryKind.NPM:
        command, args = kind.launcher, ["-y", package.identifier]
    elif kind == PackageRegistryKind.OCI:
        command, args = kind.launcher, ["run", "-i", "--rm", package.identifier]
    elif kind.launcher:
        command, args = kind.launcher, [package.identifier]
    else:
        command, args = package.identifier, []

    env = None
    if package.environment_variables:
        env = {var.name: f"YOUR_{var.name}" for var in package.environment_variables}

    return command, args, env


class HubState:
    """
    Aggregated application state.

    Example:
        >>> hub = HubState.from_settings(settings)
        >>> await hub.load_initial_data()
        >>> servers = hub.filtered_servers("github")
    """

    def __init__(
        self,
        registry: RegistryClient,
        metadata: MetadataClient,
        skills: SkillsClient,
        discovery: ClientDiscovery,
        store: ClientConfigStore | None = None,
        metadata_enabled: bool = True,
        skills_enabled: bool = True,
    ) -> None:
        """
        Initialize application state.

        Args:
            registry: Registry listings client
            metadata: Repository statistics client
            skills: Skill catalog client
            discovery: Installed client detection
            store: Client configuration writer (defaults to discovery's store)
            metadata_enabled: Skip the metadata load when False
            skills_enabled: Skip the skills load when False
        """
        self.registry = registry
        self.metadata = metadata
        self.skills_client = skills
        self.discovery = discovery
        self.store = store or discovery.store
        self.metadata_enabled = metadata_enabled
        self.skills_enabled = skills_enabled

        self.registry_servers: list[ServerRecord] = []
        self.clients: list[DiscoveredClient] = []
        self.skills: list[SkillRecord] = []
        self.error: HubError | None = None

        self.is_loading_registry = False
        self.is_loading_clients = False
        self.is_loading_metadata = False
        self.is_loading_skills = False

    @classmethod
    def from_settings(
        cls,
        settings: HubSettings,
        http_client: httpx.AsyncClient | None = None,
    ) -> "HubState":
        """Build the services from configuration, sharing one HTTP client."""
        http = http_client or create_http_client(
            timeout=settings.http.timeout, user_agent=settings.http.user_agent
        )

        skills_cls = SKILL_PROVIDERS[settings.skills.provider]
        store = ClientConfigStore(settings.clients.home)

        return cls(
            registry=RegistryClient(
                http,
                active_registry_id=settings.registry.active,
                page_size=settings.registry.page_size,
            ),
            metadata=MetadataClient(
                http,
                base_url=settings.metadata.url,
                page_size=settings.metadata.page_size,
            ),
            skills=skills_cls(
                http,
                base_url=settings.skills.base_url,
                limit=settings.skills.limit,
                seed_queries=settings.skills.seed_queries,
            ),
            discovery=ClientDiscovery(
                settings.clients.home,
                applications_dir=settings.clients.applications_dir,
                store=store,
            ),
            store=store,
            metadata_enabled=settings.metadata.enabled,
            skills_enabled=settings.skills.enabled,
        )

    # Loading

    async def load_initial_data(self) -> None:
        """Run the registry, client, metadata and skills loads concurrently."""
        logger.info("Loading initial data")
        await asyncio.gather(
            self.load_registry(),
            self.discover_clients(),
            self.load_metadata(),
            self.load_skills(),
        )
        logger.info(
            "Initial data loaded",
            servers=len(self.registry_servers),
            clients=len(self.installed_clients),
            skills=len(self.skills),
        )

    async def load_registry(self) -> None:
        self.is_loading_registry = True
        try:
            self.registry_servers = await self.registry.fetch_all()
            logger.info(
                "Registry loaded",
                registry=self.registry.active_registry.id,
                servers=len(self.registry_servers),
            )
        except Exception as e:
            logger.error("Registry load failed", error=str(e))
            self.error = load_failed(HubErrorCode.REGISTRY_LOAD_FAILED, e)
        finally:
            self.is_loading_registry = False

    async def discover_clients(self) -> None:
        self.is_loading_clients = True
        try:
            self.clients = await asyncio.to_thread(self.discovery.discover_all)
            logger.info(
                "Clients discovered",
                installed=sum(1 for client in self.clients if client.is_installed),
            )
        except Exception as e:
            logger.error("Client discovery failed", error=str(e))
            self.error = load_failed(HubErrorCode.CLIENT_DISCOVERY_FAILED, e)
        finally:
            self.is_loading_clients = False

    async def load_metadata(self) -> None:
        if not self.metadata_enabled:
            return
        self.is_loading_metadata = True
        try:
            table = await self.metadata.fetch_all()
            logger.info("Metadata loaded", servers=len(table))
        except Exception as e:
            # The hub works without statistics
            logger.warning("Metadata load failed", error=str(e))
        finally:
            self.is_loading_metadata = False

    async def load_skills(self) -> None:
        if not self.skills_enabled:
            return
        self.is_loading_skills = True
        try:
            self.skills = await self.skills_client.fetch_popular()
            logger.info("Skills loaded", skills=len(self.skills))
        except Exception as e:
            logger.warning("Skills load failed", error=str(e))
        finally:
            self.is_loading_skills = False

    async def switch_registry(self, registry: RegistryDescriptor | str) -> None:
        """
        Select another registry and reload its listings.

        Raises:
            ConfigurationError: Unknown registry id
        """
        self.registry.set_active_registry(registry)
        await self.load_registry()
        logger.info("Switched registry", registry=self.registry.active_registry.id)

    async def refresh_all(self) -> None:
        """Drop the metadata and skills caches and reload everything."""
        self.metadata.clear_cache()
        self.skills_client.clear_cache()
        await self.load_initial_data()

    async def search_skills(self, query: str) -> list[SkillRecord]:
        try:
            return await self.skills_client.search(query)
        except Exception as e:
            logger.warning("Skills search failed", query=query, error=str(e))
            return []

    # Client configuration

    async def install_server(
        self,
        server_name: str,
        client_type: ClientType,
        command: str,
        args: list[str],
        env: dict[str, str] | None = None,
        project_dir: str | Path | None = None,
    ) -> Path:
        """
        Write a server entry into a client configuration, then rediscover.

        Raises:
            ConfigurationError: The client has no configuration file
            InstallationFailedError: The configuration cannot be written
        """
        path = self.store.install(
            server_name, client_type, command, args, env, project_dir=project_dir
        )
        logger.info("Server installed", server=server_name, client=str(client_type))
        await self.discover_clients()
        return path

    async def uninstall_server(
        self,
        server_name: str,
        client_type: ClientType,
        project_dir: str | Path | None = None,
    ) -> bool:
        removed = self.store.uninstall(server_name, client_type, project_dir=project_dir)
        if removed:
            logger.info("Server uninstalled", server=server_name, client=str(client_type))
        await self.discover_clients()
        return removed

    # Projections

    @property
    def installed_servers(self) -> list[InstalledServerRecord]:
        merged = merge_installed_servers(self.clients)
        return sorted(merged.values(), key=lambda record: record.name.lower())

    @property
    def installed_clients(self) -> list[DiscoveredClient]:
        return [
            client
            for client in self.clients
            if client.is_installed or client.installed_servers
        ]

    @property
    def is_loading(self) -> bool:
        return (
            self.is_loading_registry
            or self.is_loading_clients
            or self.is_loading_metadata
            or self.is_loading_skills
        )

    def metadata_for(self, server: ServerRecord) -> MetadataRecord | None:
        return self.metadata.lookup(server.name, server.repository_url)

    def find_server(self, name: str) -> ServerRecord | None:
        """Find a loaded listing by registry name or config entry name."""
        for server in self.registry_servers:
            if server.name == name or server_key(server) == name:
                return server
        return None

    def filtered_servers(
        self,
        query: str = "",
        package_kind: PackageRegistryKind | None = None,
        sort: SortOption = SortOption.STARS,
    ) -> list[ServerRecord]:
        return filter_servers(
            self.registry_servers,
            query=query,
            package_kind=package_kind,
            sort=sort,
            metadata_lookup=self.metadata_for,
        )

    def clear_error(self) -> None:
        self.error = None

    async def close(self) -> None:
        # Closing an already-closed httpx client is a no-op
        await self.registry.close()
        await self.metadata.close()
        await self.skills_client.close()
