"""Tests for the aggregated application state and its projections."""

from datetime import datetime, timezone

import httpx
import pytest

from agentichub.clients.config_files import ClientConfigStore
from agentichub.clients.descriptors import ClientType
from agentichub.clients.discovery import ClientDiscovery
from agentichub.config.loader import HubSettings
from agentichub.errors import HubErrorCode
from agentichub.hub import HubState, SortOption, filter_servers, launch_config, server_key
from agentichub.metadata.client import MetadataClient, MetadataRecord
from agentichub.registry.client import RegistryClient
from agentichub.registry.models import PackageRegistryKind
from agentichub.skills.client import SkillsClient, SkillsMPClient

from tests.conftest import make_server, server_payload, write_json


def stars_lookup(table):
    return lambda server: table.get(server.name)


class TestFilterServers:
    def test_star_ties_sort_by_name(self):
        """Equal star counts fall back to case-insensitive display name."""
        beta = make_server("Beta")
        alpha = make_server("Alpha")
        table = {"Beta": MetadataRecord(stars=10), "Alpha": MetadataRecord(stars=10)}

        result = filter_servers([beta, alpha], sort=SortOption.STARS, metadata_lookup=stars_lookup(table))

        assert [s.name for s in result] == ["Alpha", "Beta"]

    def test_stars_descending(self):
        servers = [make_server("a"), make_server("b"), make_server("c")]
        table = {"a": MetadataRecord(stars=1), "b": MetadataRecord(stars=100)}

        result = filter_servers(servers, metadata_lookup=stars_lookup(table))

        assert [s.name for s in result] == ["b", "a", "c"]

    def test_name_sort_is_case_insensitive(self):
        servers = [make_server("zeta"), make_server("Alpha"), make_server("beta")]

        result = filter_servers(servers, sort=SortOption.NAME)

        assert [s.name for s in result] == ["Alpha", "beta", "zeta"]

    def test_recently_updated_missing_last(self):
        """Listings without a commit date sort as the earliest."""
        servers = [make_server("none"), make_server("old"), make_server("new")]
        table = {
            "old": MetadataRecord(last_commit_at=datetime(2024, 1, 1, tzinfo=timezone.utc)),
            "new": MetadataRecord(last_commit_at=datetime(2026, 1, 1, tzinfo=timezone.utc)),
        }

        result = filter_servers(
            servers, sort=SortOption.RECENTLY_UPDATED, metadata_lookup=stars_lookup(table)
        )

        assert [s.name for s in result] == ["new", "old", "none"]

    def test_query_and_kind_filters(self):
        npm = make_server("acme/npm-tool", packages=[{"registryType": "npm", "identifier": "x"}])
        pypi = make_server("acme/py-tool", packages=[{"registryType": "pypi", "identifier": "y"}])
        other = make_server("zzz/unrelated")

        assert filter_servers([npm, pypi, other], query="ACME", sort=SortOption.NAME) == [npm, pypi]
        assert filter_servers(
            [npm, pypi, other], package_kind=PackageRegistryKind.PYPI
        ) == [pypi]


class TestLaunchConfig:
    def test_npm_package(self):
        server = make_server(
            "io.github.acme/Weather Tool",
            packages=[
                {
                    "registryType": "npm",
                    "identifier": "@acme/weather",
                    "environmentVariables": [{"name": "API_KEY"}],
                }
            ],
        )

        assert launch_config(server) == ("npx", ["-y", "@acme/weather"], {"API_KEY": "YOUR_API_KEY"})
        assert server_key(server) == "weather-tool"

    def test_pypi_and_oci(self):
        pypi = make_server("p", packages=[{"registryType": "pypi", "identifier": "mcp-p"}])
        oci = make_server("o", packages=[{"registryType": "oci", "identifier": "ghcr.io/o"}])

        assert launch_config(pypi) == ("uvx", ["mcp-p"], None)
        assert launch_config(oci) == ("docker", ["run", "-i", "--rm", "ghcr.io/o"], None)

    def test_no_package(self):
        assert launch_config(make_server("bare")) is None


def registry_handler(request):
    host = request.url.host
    if host == "registry.modelcontextprotocol.io":
        return httpx.Response(
            200,
            json={
                "servers": [
                    {"server": server_payload("io.github.acme/weather", "https://github.com/acme/weather")},
                    {"server": server_payload("io.github.acme/files")},
                ],
                "metadata": {"nextCursor": None},
            },
        )
    if host == "www.josh.ing":
        return httpx.Response(
            200,
            json={
                "servers": [
                    {
                        "name": "other-name",
                        "repository_url": "https://github.com/acme/weather",
                        "github": {"stars": 42},
                    }
                ],
                "pagination": {"has_more": False},
            },
        )
    if host == "skills.sh":
        return httpx.Response(200, json={"skills": [{"id": "s1", "name": "s1", "installs": 3}]})
    return httpx.Response(404)


@pytest.fixture
def hub_factory(mock_http, tmp_path):
    def factory(handler=registry_handler, home=None):
        http, transport = mock_http(handler)
        home = home or tmp_path / "home"
        home.mkdir(exist_ok=True)
        apps = tmp_path / "Applications"
        apps.mkdir(exist_ok=True)
        store = ClientConfigStore(home)
        hub = HubState(
            registry=RegistryClient(http),
            metadata=MetadataClient(http),
            skills=SkillsClient(http, seed_queries=["react"]),
            discovery=ClientDiscovery(home, applications_dir=apps, store=store),
            store=store,
        )
        return hub, transport, home, apps

    return factory


class TestHubState:
    async def test_load_initial_data(self, hub_factory):
        """All four loads populate the state concurrently."""
        hub, _, home, apps = hub_factory()
        (apps / "Cursor.app").mkdir()
        write_json(home / ".cursor" / "mcp.json", {"mcpServers": {"fs": {"command": "npx"}}})

        await hub.load_initial_data()

        assert hub.error is None
        assert {s.name for s in hub.registry_servers} == {
            "io.github.acme/weather",
            "io.github.acme/files",
        }
        assert [s.id for s in hub.skills] == ["Skills.sh:s1"]
        assert ClientType.CURSOR in [c.client_type for c in hub.installed_clients]
        assert [r.name for r in hub.installed_servers] == ["fs"]
        assert not hub.is_loading

    async def test_metadata_for_uses_url_fallback(self, hub_factory):
        hub, _, _, _ = hub_factory()
        await hub.load_initial_data()

        weather = hub.find_server("io.github.acme/weather")
        files = hub.find_server("files")

        assert hub.metadata_for(weather).stars == 42
        assert hub.metadata_for(files) is None
        assert [s.name for s in hub.filtered_servers()][0] == "io.github.acme/weather"

    async def test_registry_failure_sets_error(self, hub_factory):
        """A registry failure is stored; the other loads still complete."""

        def handler(request):
            if request.url.host == "registry.modelcontextprotocol.io":
                return httpx.Response(500)
            return registry_handler(request)

        hub, _, _, _ = hub_factory(handler)
        await hub.load_initial_data()

        assert hub.error is not None
        assert hub.error.code == HubErrorCode.REGISTRY_LOAD_FAILED
        assert hub.error.message.startswith("Failed to load registry")
        assert hub.registry_servers == []
        assert hub.skills

        hub.clear_error()
        assert hub.error is None

    async def test_metadata_and_skills_failures_are_ignored(self, hub_factory):
        def handler(request):
            if request.url.host in ("www.josh.ing", "skills.sh"):
                return httpx.Response(503)
            return registry_handler(request)

        hub, _, _, _ = hub_factory(handler)
        await hub.load_initial_data()

        assert hub.error is None
        assert hub.skills == []
        assert hub.registry_servers

    async def test_discovery_failure_sets_error(self, hub_factory, monkeypatch):
        hub, _, _, _ = hub_factory()

        def broken():
            raise OSError("permission denied")

        monkeypatch.setattr(hub.discovery, "discover_all", broken)
        await hub.discover_clients()

        assert hub.error.code == HubErrorCode.CLIENT_DISCOVERY_FAILED
        assert "permission denied" in hub.error.message

    async def test_search_skills_failure_returns_empty(self, hub_factory):
        hub, _, _, _ = hub_factory(lambda request: httpx.Response(500))

        assert await hub.search_skills("react") == []

    async def test_refresh_all_clears_caches(self, hub_factory):
        hub, transport, _, _ = hub_factory()
        await hub.load_initial_data()
        first = len(transport.requests)

        await hub.load_initial_data()
        # Only the registry is fetched again while caches are warm
        assert len(transport.requests) == first + 1

        await hub.refresh_all()
        assert len(transport.requests) == first * 2 + 1

    async def test_install_and_uninstall_rediscover(self, hub_factory):
        hub, _, home, apps = hub_factory()
        (apps / "Cursor.app").mkdir()

        path = await hub.install_server("fs", ClientType.CURSOR, "npx", ["-y", "fs"])

        assert path == home / ".cursor" / "mcp.json"
        assert [r.name for r in hub.installed_servers] == ["fs"]

        assert await hub.uninstall_server("fs", ClientType.CURSOR) is True
        assert hub.installed_servers == []

    async def test_installed_servers_sorted_and_merged(self, hub_factory):
        hub, _, home, apps = hub_factory()
        (apps / "Cursor.app").mkdir()
        (apps / "Claude.app").mkdir()
        write_json(
            home / ".cursor" / "mcp.json",
            {"mcpServers": {"beta": {"command": "a"}, "Alpha": {"command": "b"}}},
        )
        write_json(
            home / "Library" / "Application Support" / "Claude" / "claude_desktop_config.json",
            {"mcpServers": {"beta": {"command": "c"}}},
        )

        await hub.discover_clients()

        servers = hub.installed_servers
        assert [r.name for r in servers] == ["Alpha", "beta"]
        assert servers[1].clients == frozenset({ClientType.CURSOR, ClientType.CLAUDE})

    async def test_switch_registry(self, hub_factory):
        hub, transport, _, _ = hub_factory()

        await hub.switch_registry("glama")

        assert hub.registry.active_registry.id == "glama"
        assert transport.requests[-1].url.host == "glama.ai"
        assert hub.error.code == HubErrorCode.REGISTRY_LOAD_FAILED


class TestFromSettings:
    def test_builds_services(self, tmp_path):
        settings = HubSettings(
            registry={"active": "smithery", "page_size": 20},
            skills={"provider": "skillsmp", "limit": 10},
            clients={"home": str(tmp_path)},
        )

        hub = HubState.from_settings(settings, http_client=httpx.AsyncClient())

        assert hub.registry.active_registry.id == "smithery"
        assert hub.registry.page_size == 20
        assert isinstance(hub.skills_client, SkillsMPClient)
        assert hub.skills_client.limit == 10
        assert hub.discovery.home == tmp_path
        assert hub.store.home == tmp_path
