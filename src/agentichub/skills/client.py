"""
Agent skill catalogs.

The skill providers only expose a search endpoint, with no listing or
trending endpoint. A "popular" catalog is approximated by running a fixed set
of seed queries, merging the results by skill id and ranking by install
count.
"""

import logging
from collections.abc import Iterable
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import DecodingError, HubError, InvalidResponseError
from ..http import create_http_client, get_json

logger = logging.getLogger(__name__)


class SkillRecord(BaseModel):
    """A catalog entry for an installable agent skill."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str | None = None
    source: str
    installs: int = Field(0, ge=0)
    repository_url: str | None = None
    provider: str

    @property
    def display_name(self) -> str:
        return self.name.split("/")[-1]

    @property
    def owner_repo(self) -> str | None:
        parts = self.source.split("/")
        if len(parts) >= 2:
            return f"{parts[0]}/{parts[1]}"
        return None

    @property
    def skill_path(self) -> str | None:
        parts = self.source.split("/")
        if len(parts) >= 3:
            return "/".join(parts[2:])
        return None

    @property
    def install_command(self) -> str:
        return f"npx skills add {self.source}"

    @property
    def formatted_installs(self) -> str:
        if self.installs >= 1_000_000:
            return f"{self.installs / 1_000_000:.1f}M"
        if self.installs >= 1000:
            return f"{self.installs / 1000:.1f}k"
        return str(self.installs)


def _non_negative(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return max(value, 0)


class SkillsClient:
    """Client for the Skills.sh search API."""

    PROVIDER = "Skills.sh"
    DEFAULT_BASE_URL = "https://skills.sh"
    DEFAULT_LIMIT = 50
    SEED_QUERIES = [
        "react",
        "typescript",
        "python",
        "ai",
        "frontend",
        "backend",
        "testing",
        "git",
        "docker",
        "aws",
        "design",
        "code",
        "api",
        "database",
    ]
    # An empty query returns the provider's general listing
    INCLUDE_EMPTY_QUERY = True

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
        limit: int | None = None,
        seed_queries: list[str] | None = None,
    ) -> None:
        """
        Initialize skills client.

        Args:
            http_client: Shared HTTP client (one is created when omitted)
            base_url: Provider base URL
            limit: Result limit per search
            seed_queries: Queries used to build the popular catalog
        """
        self._http = http_client or create_http_client()
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self.limit = limit or self.DEFAULT_LIMIT
        self.seed_queries = list(seed_queries or self.SEED_QUERIES)

        self._cached: list[SkillRecord] = []
        self._fetched = False

    @property
    def cached_skills(self) -> list[SkillRecord]:
        return list(self._cached)

    def _search_url(self, query: str, limit: int) -> str:
        return f"{self.base_url}/api/search?q={quote(query)}&limit={limit}"

    async def search(self, query: str) -> list[SkillRecord]:
        """
        Search the catalog.

        Raises:
            InvalidResponseError: Non-2xx status or unexpected document
            DecodingError: A result does not match the skill schema
            HubNetworkError: Transport failure
        """
        url = self._search_url(query, self.limit)
        data = await get_json(self._http, url)
        return self._parse_results(url, data)

    def _parse_results(self, url: str, data: Any) -> list[SkillRecord]:
        if not isinstance(data, dict) or not isinstance(data.get("skills"), list):
            raise InvalidResponseError(url, reason="missing 'skills' list")

        skills: list[SkillRecord] = []
        for item in data["skills"]:
            if not isinstance(item, dict):
                raise DecodingError("skill", f"expected object, got {type(item).__name__}")
            try:
                skills.append(self._to_record(item))
            except (KeyError, TypeError, ValidationError) as e:
                raise DecodingError("skill", str(e), url=url) from e
        return skills

    def _to_record(self, item: dict[str, Any]) -> SkillRecord:
        skill_id = str(item["id"])
        top_source = item.get("topSource")
        if top_source is not None and not isinstance(top_source, str):
            raise TypeError(f"topSource must be a string, got {type(top_source).__name__}")
        repository_url = None
        if top_source:
            repository_url = f"https://github.com/{top_source.split('@')[0]}"

        return SkillRecord(
            id=f"{self.PROVIDER}:{skill_id}",
            name=item["name"],
            description=item.get("description"),
            source=top_source or skill_id,
            installs=_non_negative(item.get("installs")),
            repository_url=repository_url,
            provider=self.PROVIDER,
        )

    def _popular_queries(self) -> Iterable[str]:
        yield from self.seed_queries
        if self.INCLUDE_EMPTY_QUERY:
            yield ""

    async def _search_popular(self, query: str) -> list[SkillRecord]:
        return await self.search(query)

    async def fetch_popular(self) -> list[SkillRecord]:
        """
        Build the popular catalog from the seed queries.

        Results are cached for the process lifetime. A failing query is
        logged and skipped, so the catalog may be partial or empty.
        """
        if self._fetched:
            return self.cached_skills

        logger.info(f"Fetching popular skills from {self.PROVIDER}")

        merged: dict[str, SkillRecord] = {}
        for query in self._popular_queries():
            try:
                results = await self._search_popular(query)
            except HubError as e:
                logger.warning(f"{self.PROVIDER}: query {query!r} failed: {e}")
                continue
            for skill in results:
                merged.setdefault(skill.id, skill)

        self._cached = sorted(merged.values(), key=lambda s: s.installs, reverse=True)
        self._fetched = True

        logger.info(f"Loaded {len(self._cached)} skills from {self.PROVIDER}")
        return self.cached_skills

    def clear_cache(self) -> None:
        self._cached = []
        self._fetched = False
        logger.info(f"{self.PROVIDER} skills cache cleared")

    async def close(self) -> None:
        await self._http.aclose()


class SkillsMPClient(SkillsClient):
    """Client for the SkillsMP search API."""

    PROVIDER = "SkillsMP"
    DEFAULT_BASE_URL = "https://skillsmp.com/api/v1/skills"
    SEED_QUERIES = ["ai", "react", "python", "typescript", "code"]
    INCLUDE_EMPTY_QUERY = False
    POPULAR_LIMIT = 100

    async def search(
        self,
        query: str,
        page: int = 1,
        limit: int | None = None,
        sort_by: str = "stars",
    ) -> list[SkillRecord]:
        url = (
            f"{self.base_url}/search?q={quote(query)}&page={page}"
            f"&limit={limit or self.limit}&sortBy={sort_by}"
        )
        data = await get_json(self._http, url, headers={"Accept": "application/json"})
        return self._parse_results(url, data)

    async def _search_popular(self, query: str) -> list[SkillRecord]:
        return await self.search(query, limit=self.POPULAR_LIMIT)

    def _to_record(self, item: dict[str, Any]) -> SkillRecord:
        skill_id = str(item["id"])
        return SkillRecord(
            id=f"{self.PROVIDER}:{skill_id}",
            name=item["name"],
            description=item.get("description"),
            source=item.get("source") or skill_id,
            installs=_non_negative(item.get("stars")),
            repository_url=item.get("repository_url"),
            provider=self.PROVIDER,
        )


SKILL_PROVIDERS: dict[str, type[SkillsClient]] = {
    "skills.sh": SkillsClient,
    "skillsmp": SkillsMPClient,
}
