"""Tests for registry models and the paginated registry client."""

import httpx
import pytest

from agentichub.errors import (
    ConfigurationError,
    DecodingError,
    HubNetworkError,
    InvalidResponseError,
)
from agentichub.registry.client import RegistryClient, matches_query
from agentichub.registry.models import (
    DEFAULT_REGISTRIES,
    PackageRegistryKind,
    ServerRecord,
    TransportKind,
)

from tests.conftest import make_server, server_payload


def page(servers, next_cursor=None):
    return {
        "servers": [{"server": s, "_meta": {}} for s in servers],
        "metadata": {"nextCursor": next_cursor, "count": len(servers)},
    }


class TestServerRecord:
    def test_wire_aliases(self):
        """camelCase wire keys map onto the model fields."""
        server = ServerRecord.model_validate(
            {
                "name": "io.github.acme/weather",
                "websiteUrl": "https://acme.dev",
                "icons": [{"src": "https://acme.dev/icon.png", "mimeType": "image/png"}],
                "packages": [
                    {
                        "registryType": "npm",
                        "identifier": "@acme/weather",
                        "transport": {"type": "stdio"},
                        "environmentVariables": [
                            {"name": "API_KEY", "isSecret": True}
                        ],
                    }
                ],
            }
        )

        assert server.website_url == "https://acme.dev"
        assert server.icon_url == "https://acme.dev/icon.png"
        package = server.primary_package
        assert package.registry_kind == PackageRegistryKind.NPM
        assert package.transport.kind == TransportKind.STDIO
        assert package.environment_variables[0].is_secret is True

    def test_unknown_enum_values_decode(self):
        """Unrecognized registry and transport kinds become UNKNOWN."""
        server = ServerRecord.model_validate(
            {
                "name": "x",
                "packages": [
                    {"registryType": "nuget", "identifier": "X", "transport": {"type": "grpc"}}
                ],
            }
        )

        package = server.primary_package
        assert package.registry_kind == PackageRegistryKind.UNKNOWN
        assert package.transport.kind == TransportKind.UNKNOWN
        assert package.registry_kind.display_name == "Other"

    def test_display_name(self):
        """Title wins, else the last name segment."""
        assert make_server("io.github.acme/weather").display_name == "weather"
        assert make_server("io.github.acme/weather", title="Weather").display_name == "Weather"

    def test_identity_and_id(self):
        """Identity is the normalized URL when present, else the name."""
        with_repo = make_server("a/b", "https://github.com/A/B.git")
        without = make_server("a/c")

        assert with_repo.identity == "github.com/a/b"
        assert with_repo.id == "a/b|github.com/a/b"
        assert without.identity == "a/c"
        assert without.id == "a/c"

    def test_unique_transport_kinds_in_order(self):
        """Transport kinds are listed once, in first-occurrence order."""
        server = make_server(
            "t",
            packages=[
                {"registryType": "npm", "identifier": "a", "transport": {"type": "sse"}},
                {"registryType": "pypi", "identifier": "b", "transport": {"type": "stdio"}},
                {"registryType": "oci", "identifier": "c", "transport": {"type": "sse"}},
            ],
        )

        assert server.unique_transport_kinds == [TransportKind.SSE, TransportKind.STDIO]

    def test_empty_name_rejected(self):
        """A listing must have a name."""
        with pytest.raises(ValueError):
            ServerRecord.model_validate({"name": "  "})

    def test_null_packages(self):
        """A null package list decodes as empty."""
        server = ServerRecord.model_validate({"name": "x", "packages": None})
        assert server.packages == []
        assert server.primary_package is None


class TestMatchesQuery:
    def test_empty_query_matches(self):
        assert matches_query(make_server("anything"), "")

    def test_case_insensitive_fields(self):
        """Name, description and display name are searched."""
        server = make_server("io.github.acme/weather", description="Forecasts", title="Sky")
        assert matches_query(server, "ACME")
        assert matches_query(server, "forecast")
        assert matches_query(server, "sky")
        assert not matches_query(server, "ocean")


class TestRegistryClient:
    async def test_fetch_page_parses_cursor(self, mock_http):
        """A page returns its listings and the next cursor."""

        def handler(request):
            assert request.url.params["limit"] == "100"
            assert "cursor" not in request.url.params
            return httpx.Response(200, json=page([server_payload("a")], "next-1"))

        http, _ = mock_http(handler)
        client = RegistryClient(http)

        servers, cursor = await client.fetch_page()

        assert [s.name for s in servers] == ["a"]
        assert cursor == "next-1"
        await client.close()

    async def test_fetch_all_follows_cursors_and_dedups(self, mock_http):
        """Pages are followed until the cursor is null, then deduplicated."""
        pages = {
            None: page([server_payload("a", "github.com/x/a", "1.9")], "c1"),
            "c1": page([server_payload("a", "https://github.com/x/a", "1.10")], "c2"),
            "c2": page([server_payload("b")], None),
        }

        def handler(request):
            return httpx.Response(200, json=pages[request.url.params.get("cursor")])

        http, transport = mock_http(handler)
        client = RegistryClient(http)

        servers = await client.fetch_all()

        assert len(transport.requests) == 3
        assert sorted((s.name, s.version) for s in servers) == [("a", "1.10"), ("b", "1.0.0")]
        await client.close()

    async def test_fetch_all_fails_fast(self, mock_http):
        """A failing page aborts the whole fetch."""

        def handler(request):
            if request.url.params.get("cursor") == "c1":
                return httpx.Response(500, text="boom")
            return httpx.Response(200, json=page([server_payload("a")], "c1"))

        http, _ = mock_http(handler)
        client = RegistryClient(http)

        with pytest.raises(InvalidResponseError) as exc_info:
            await client.fetch_all()

        assert exc_info.value.status_code == 500
        await client.close()

    async def test_non_json_body(self, mock_http):
        """A body that is not JSON is an invalid response."""
        http, _ = mock_http(lambda request: httpx.Response(200, text="<html>"))
        client = RegistryClient(http)

        with pytest.raises(InvalidResponseError):
            await client.fetch_page()
        await client.close()

    async def test_missing_servers_list(self, mock_http):
        """A document without a servers list is an invalid response."""
        http, _ = mock_http(lambda request: httpx.Response(200, json={"items": []}))
        client = RegistryClient(http)

        with pytest.raises(InvalidResponseError):
            await client.fetch_page()
        await client.close()

    async def test_bad_listing_is_decoding_error(self, mock_http):
        """A listing that does not fit the schema raises DecodingError."""
        http, _ = mock_http(
            lambda request: httpx.Response(200, json=page([{"description": "no name"}]))
        )
        client = RegistryClient(http)

        with pytest.raises(DecodingError):
            await client.fetch_page()
        await client.close()

    async def test_transport_error(self, mock_http):
        """Connection failures surface as HubNetworkError."""

        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        http, _ = mock_http(handler)
        client = RegistryClient(http)

        with pytest.raises(HubNetworkError):
            await client.fetch_page()
        await client.close()

    async def test_search_filters_locally(self, mock_http):
        """Search fetches everything and filters client-side."""
        http, _ = mock_http(
            lambda request: httpx.Response(
                200,
                json=page(
                    [
                        server_payload("acme/weather", description="Forecasts"),
                        server_payload("acme/files"),
                    ]
                ),
            )
        )
        client = RegistryClient(http)

        results = await client.search("forecast")

        assert [s.name for s in results] == ["acme/weather"]
        await client.close()

    async def test_active_registry_selection(self, mock_http):
        """Requests go to the selected registry's URL."""
        http, transport = mock_http(lambda request: httpx.Response(200, json=page([])))
        client = RegistryClient(http)
        assert client.active_registry.id == "official"

        client.set_active_registry("glama")
        await client.fetch_page()

        glama = next(r for r in DEFAULT_REGISTRIES if r.id == "glama")
        assert str(transport.requests[0].url).startswith(glama.url)
        await client.close()

    def test_unknown_registry(self):
        """Selecting an unknown registry id is a configuration error."""
        client = RegistryClient(httpx.AsyncClient())
        with pytest.raises(ConfigurationError):
            client.set_active_registry("nope")
