"""
Repository statistics for registry listings.

The metadata API reports GitHub statistics (stars, forks, last commit) for
registry servers. The whole table is fetched once per process and indexed by
server name and by normalized repository URL, since the two sources do not
always agree on names.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any

import httpx

from ..errors import DecodingError, InvalidResponseError
from ..http import create_http_client, get_json

logger = logging.getLogger(__name__)

DEFAULT_METADATA_URL = "https://www.josh.ing/api/mymcp/servers"


class ActivityStatus(IntEnum):
    """Repository activity, ordered from least to most active."""

    UNKNOWN = 0
    ARCHIVED = 1
    STALE = 2
    RECENT = 3
    ACTIVE = 4

    @property
    def label(self) -> str:
        return self.name.capitalize()


def _months_before(moment: datetime, months: int) -> datetime:
    """Same wall-clock time ``months`` calendar months earlier, day clamped."""
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    # Clamp to the last day of the target month (e.g. 31 March -> 28/29 Feb)
    next_month = datetime(year + month // 12, month % 12 + 1, 1)
    last_day = (next_month - datetime(year, month, 1)).days
    return moment.replace(year=year, month=month, day=min(moment.day, last_day))


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp (fractional seconds optional); None if unparsable."""
    if not isinstance(value, str) or not value:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return max(value, 0)


@dataclass(frozen=True)
class MetadataRecord:
    """GitHub statistics for one server."""

    stars: int = 0
    forks: int = 0
    open_issues: int = 0
    language: str | None = None
    topics: list[str] = field(default_factory=list)
    license: str | None = None
    last_commit_at: datetime | None = None
    archived: bool = False

    @classmethod
    def from_github(cls, github: dict[str, Any]) -> "MetadataRecord":
        """Build from the ``github`` object of a metadata API entry."""
        topics = github.get("topics") or []
        return cls(
            stars=_count(github.get("stars")),
            forks=_count(github.get("forks")),
            open_issues=_count(github.get("open_issues")),
            language=github.get("language"),
            topics=[str(topic) for topic in topics] if isinstance(topics, list) else [],
            license=github.get("license"),
            last_commit_at=parse_timestamp(github.get("last_commit_at")),
            archived=bool(github.get("archived") or False),
        )

    def activity_status(self, now: datetime | None = None) -> ActivityStatus:
        if self.archived:
            return ActivityStatus.ARCHIVED
        if self.last_commit_at is None:
            return ActivityStatus.UNKNOWN

        now = now or datetime.now(timezone.utc)
        if self.last_commit_at > _months_before(now, 1):
            return ActivityStatus.ACTIVE
        if self.last_commit_at > _months_before(now, 6):
            return ActivityStatus.RECENT
        return ActivityStatus.STALE

    @property
    def formatted_stars(self) -> str:
        if self.stars >= 1000:
            return f"{self.stars / 1000:.1f}k"
        return str(self.stars)


def normalize_metadata_url(url: str) -> str:
    """Lowercase, drop http(s) scheme and ``www.``, strip surrounding slashes."""
    return (
        url.lower()
        .replace("https://", "")
        .replace("http://", "")
        .replace("www.", "")
        .strip("/")
    )


def _index_entry(
    entry: Any,
    by_name: dict[str, MetadataRecord],
    by_url: dict[str, MetadataRecord],
) -> None:
    if not isinstance(entry, dict):
        return
    github = entry.get("github")
    name = entry.get("name")
    # A null star count means the upstream could not resolve GitHub data
    if not name or not isinstance(github, dict) or github.get("stars") is None:
        return

    record = MetadataRecord.from_github(github)
    by_name[name] = record

    repo_url = entry.get("repository_url")
    if isinstance(repo_url, str) and repo_url:
        by_url[normalize_metadata_url(repo_url)] = record


class MetadataClient:
    """Write-once cache of repository statistics with name and URL lookups."""

    DEFAULT_PAGE_SIZE = 100

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        base_url: str = DEFAULT_METADATA_URL,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        """
        Initialize metadata client.

        Args:
            http_client: Shared HTTP client (one is created when omitted)
            base_url: Metadata API endpoint
            page_size: ``limit`` sent with each page request
        """
        self._http = http_client or create_http_client()
        self.base_url = base_url
        self.page_size = page_size

        self._by_name: dict[str, MetadataRecord] = {}
        self._by_url: dict[str, MetadataRecord] = {}
        self._fetched = False

    @property
    def is_populated(self) -> bool:
        return self._fetched

    async def fetch_all(self) -> dict[str, MetadataRecord]:
        """
        Populate the cache from every page of the metadata API.

        Returns the name-keyed table. Once populated, later calls return the
        same table without any request until ``clear_cache`` is called.

        Raises:
            InvalidResponseError: Non-2xx status or unexpected document
            DecodingError: Pagination block missing or malformed
            HubNetworkError: Transport failure
        """
        if self._fetched:
            return self._by_name

        logger.info(f"Fetching repository metadata from {self.base_url}")

        # Pages are indexed into local tables; the cache is only replaced
        # once every page has been read.
        by_name: dict[str, MetadataRecord] = {}
        by_url: dict[str, MetadataRecord] = {}
        offset = 0
        has_more = True
        while has_more:
            data = await get_json(
                self._http,
                self.base_url,
                params={
                    "limit": self.page_size,
                    "offset": offset,
                    "latest_only": "true",
                },
            )
            if not isinstance(data, dict) or not isinstance(data.get("servers"), list):
                raise InvalidResponseError(self.base_url, reason="missing 'servers' list")

            for entry in data["servers"]:
                _index_entry(entry, by_name, by_url)

            pagination = data.get("pagination")
            if not isinstance(pagination, dict) or "has_more" not in pagination:
                raise DecodingError(
                    "metadata page", "missing pagination.has_more", offset=offset
                )

            has_more = bool(pagination["has_more"])
            offset += self.page_size

        self._by_name = by_name
        self._by_url = by_url
        self._fetched = True
        logger.info(f"Cached metadata for {len(self._by_name)} servers")
        return self._by_name

    def lookup(self, name: str, repo_url: str | None = None) -> MetadataRecord | None:
        """Look up by name first, then by normalized repository URL."""
        record = self._by_name.get(name)
        if record is not None:
            return record
        if repo_url:
            return self._by_url.get(normalize_metadata_url(repo_url))
        return None

    def clear_cache(self) -> None:
        """Drop both tables so the next ``fetch_all`` hits the network."""
        self._by_name = {}
        self._by_url = {}
        self._fetched = False
        logger.info("Metadata cache cleared")

    async def close(self) -> None:
        await self._http.aclose()
