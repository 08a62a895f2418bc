"""
MCP registry API client.

Fetches server listings page by page from the active registry, following the
``nextCursor`` returned in each page's metadata until the listing is
exhausted, then collapses duplicate listings.
"""

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from ..errors import ConfigurationError, DecodingError, InvalidResponseError
from ..http import create_http_client, get_json
from .dedup import deduplicate
from .models import DEFAULT_REGISTRIES, RegistryDescriptor, ServerRecord

logger = logging.getLogger(__name__)


class RegistryClient:
    """
    Client for paginated MCP registry listings.

    Example:
        >>> client = RegistryClient()
        >>> servers = await client.fetch_all()
        >>> matches = await client.search("filesystem")
    """

    DEFAULT_PAGE_SIZE = 100

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        registries: list[RegistryDescriptor] | None = None,
        active_registry_id: str | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        """
        Initialize registry client.

        Args:
            http_client: Shared HTTP client (one is created when omitted)
            registries: Selectable registries (defaults to the built-in list)
            active_registry_id: Registry to start with (defaults to the first)
            page_size: ``limit`` sent with each page request
        """
        self._http = http_client or create_http_client()
        self.available_registries = list(registries or DEFAULT_REGISTRIES)
        if not self.available_registries:
            raise ConfigurationError("At least one registry must be configured")

        self._active = self.available_registries[0]
        if active_registry_id:
            self.set_active_registry(active_registry_id)

        self.page_size = page_size

    @property
    def active_registry(self) -> RegistryDescriptor:
        return self._active

    def set_active_registry(self, registry: RegistryDescriptor | str) -> None:
        """
        Select the registry subsequent fetches go to.

        Cached results are not invalidated; callers re-run ``fetch_all``.

        Raises:
            ConfigurationError: Unknown registry id
        """
        if isinstance(registry, RegistryDescriptor):
            self._active = registry
        else:
            for descriptor in self.available_registries:
                if descriptor.id == registry:
                    self._active = descriptor
                    break
            else:
                raise ConfigurationError(
                    f"Unknown registry: {registry}",
                    available=[d.id for d in self.available_registries],
                )

        logger.info(f"Active registry: {self._active.name} ({self._active.url})")

    async def fetch_page(
        self, cursor: str | None = None, limit: int | None = None
    ) -> tuple[list[ServerRecord], str | None]:
        """
        Fetch one page of listings.

        Args:
            cursor: Pagination cursor from the previous page
            limit: Page size (defaults to ``page_size``)

        Returns:
            Listings on the page and the cursor of the next page, if any

        Raises:
            InvalidResponseError: Non-2xx status or unexpected document
            DecodingError: A listing does not match the server schema
            HubNetworkError: Transport failure
        """
        url = self._active.url
        params: dict[str, Any] = {"limit": limit or self.page_size}
        if cursor:
            params["cursor"] = cursor

        data = await get_json(self._http, url, params=params)
        if not isinstance(data, dict) or not isinstance(data.get("servers"), list):
            raise InvalidResponseError(url, reason="missing 'servers' list")

        servers: list[ServerRecord] = []
        for item in data["servers"]:
            server_data = item.get("server", item) if isinstance(item, dict) else item
            try:
                servers.append(ServerRecord.model_validate(server_data))
            except ValidationError as e:
                raise DecodingError("server listing", str(e), url=url) from e

        metadata = data.get("metadata") or {}
        next_cursor = metadata.get("nextCursor") if isinstance(metadata, dict) else None

        logger.debug(f"Fetched {len(servers)} servers (next cursor: {next_cursor})")
        return servers, next_cursor or None

    async def fetch_all(self) -> list[ServerRecord]:
        """
        Fetch every page of the active registry and deduplicate.

        Any failing page aborts the whole fetch; no partial list is returned.
        """
        all_servers: list[ServerRecord] = []
        cursor: str | None = None
        pages = 0

        while True:
            servers, cursor = await self.fetch_page(cursor)
            all_servers.extend(servers)
            pages += 1
            if cursor is None:
                break

        unique = deduplicate(all_servers)
        logger.info(
            f"Fetched {len(all_servers)} listings in {pages} pages from "
            f"{self._active.name}, {len(unique)} after deduplication"
        )
        return unique

    async def search(self, query: str) -> list[ServerRecord]:
        """
        Search listings by name, description or display name.

        The registry API has no search endpoint, so this filters the full
        listing client-side.
        """
        servers = await self.fetch_all()
        return [server for server in servers if matches_query(server, query)]

    async def close(self) -> None:
        await self._http.aclose()


def matches_query(server: ServerRecord, query: str) -> bool:
    """Case-insensitive substring match over name, description and display name."""
    needle = query.lower()
    if not needle:
        return True
    return (
        needle in server.name.lower()
        or needle in (server.description or "").lower()
        or needle in server.display_name.lower()
    )
