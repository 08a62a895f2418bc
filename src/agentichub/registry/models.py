"""
Data models for MCP registry listings.

Wire payloads use camelCase keys; the models accept either the wire alias or
the Python field name. Enumerated wire values that this version does not know
about decode to an explicit ``UNKNOWN`` member instead of failing.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .dedup import normalize_repository_url


class PackageRegistryKind(str, Enum):
    """Package ecosystem a server is distributed through."""

    NPM = "npm"
    PYPI = "pypi"
    OCI = "oci"
    MCPB = "mcpb"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value: object) -> "PackageRegistryKind":
        return cls.UNKNOWN

    @classmethod
    def known(cls) -> list["PackageRegistryKind"]:
        """Kinds offered as filters."""
        return [kind for kind in cls if kind is not cls.UNKNOWN]

    @property
    def display_name(self) -> str:
        return _PACKAGE_DISPLAY_NAMES[self]

    @property
    def launcher(self) -> str:
        """Command used to run a package of this kind."""
        return _PACKAGE_LAUNCHERS[self]


_PACKAGE_DISPLAY_NAMES = {
    PackageRegistryKind.NPM: "NPM",
    PackageRegistryKind.PYPI: "PyPI",
    PackageRegistryKind.OCI: "Docker",
    PackageRegistryKind.MCPB: "MCP Bundle",
    PackageRegistryKind.UNKNOWN: "Other",
}

_PACKAGE_LAUNCHERS = {
    PackageRegistryKind.NPM: "npx",
    PackageRegistryKind.PYPI: "uvx",
    PackageRegistryKind.OCI: "docker",
    PackageRegistryKind.MCPB: "open",
    PackageRegistryKind.UNKNOWN: "",
}


class TransportKind(str, Enum):
    """Transport a packaged server speaks."""

    STDIO = "stdio"
    SSE = "sse"
    STREAMABLE_HTTP = "streamable-http"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value: object) -> "TransportKind":
        return cls.UNKNOWN


class _WireModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class TransportRecord(_WireModel):
    kind: TransportKind = Field(TransportKind.UNKNOWN, alias="type")
    url: str | None = None

    @field_validator("kind", mode="before")
    @classmethod
    def _coerce_kind(cls, value: object) -> TransportKind:
        return TransportKind(value) if value is not None else TransportKind.UNKNOWN


class EnvironmentVariableRecord(_WireModel):
    name: str
    description: str | None = None
    is_secret: bool | None = Field(None, alias="isSecret")
    format: str | None = None


class PackageRecord(_WireModel):
    """One installable distribution of a server."""

    registry_kind: PackageRegistryKind = Field(
        PackageRegistryKind.UNKNOWN, alias="registryType"
    )
    identifier: str = ""
    transport: TransportRecord | None = None
    environment_variables: list[EnvironmentVariableRecord] | None = Field(
        None, alias="environmentVariables"
    )

    @field_validator("registry_kind", mode="before")
    @classmethod
    def _coerce_kind(cls, value: object) -> PackageRegistryKind:
        if value is None:
            return PackageRegistryKind.UNKNOWN
        return PackageRegistryKind(value)


class IconRecord(_WireModel):
    src: str
    mime_type: str | None = Field(None, alias="mimeType")
    theme: str | None = None


class RepositoryRecord(_WireModel):
    url: str | None = None
    source: str | None = None


class ServerRecord(_WireModel):
    """A server listing as published by a registry."""

    name: str
    title: str | None = None
    description: str | None = None
    version: str | None = None
    packages: list[PackageRecord] = Field(default_factory=list)
    icons: list[IconRecord] | None = None
    repository: RepositoryRecord | None = None
    website_url: str | None = Field(None, alias="websiteUrl")

    @field_validator("name")
    @classmethod
    def _name_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("server name must not be empty")
        return value

    @field_validator("packages", mode="before")
    @classmethod
    def _packages_default(cls, value: object) -> object:
        return [] if value is None else value

    @property
    def display_name(self) -> str:
        if self.title:
            return self.title
        return self.name.split("/")[-1] or self.name

    @property
    def repository_url(self) -> str | None:
        return self.repository.url if self.repository else None

    @property
    def normalized_repository_url(self) -> str | None:
        url = self.repository_url
        return normalize_repository_url(url) if url else None

    @property
    def identity(self) -> str:
        """Deduplication identity: normalized repository URL, else name."""
        return self.normalized_repository_url or self.name

    @property
    def id(self) -> str:
        normalized = self.normalized_repository_url
        return f"{self.name}|{normalized}" if normalized else self.name

    @property
    def primary_package(self) -> PackageRecord | None:
        return self.packages[0] if self.packages else None

    @property
    def icon_url(self) -> str | None:
        if not self.icons:
            return None
        return self.icons[0].src

    @property
    def unique_transport_kinds(self) -> list[TransportKind]:
        seen: list[TransportKind] = []
        for package in self.packages:
            if package.transport and package.transport.kind not in seen:
                seen.append(package.transport.kind)
        return seen

    def has_package_kind(self, kind: PackageRegistryKind) -> bool:
        return any(package.registry_kind == kind for package in self.packages)


class RegistryCategory(str, Enum):
    GITHUB = "github"
    CURATED = "curated"
    COMMUNITY = "community"
    HOSTED = "hosted"


class RegistryDescriptor(_WireModel):
    """A selectable source of server listings."""

    id: str
    name: str
    description: str
    url: str
    category: RegistryCategory
    is_official: bool = False


DEFAULT_REGISTRIES: list[RegistryDescriptor] = [
    RegistryDescriptor(
        id="official",
        name="Official MCP Registry",
        description="Reference registry published by the Model Context Protocol project",
        url="https://registry.modelcontextprotocol.io/v0.1/servers",
        category=RegistryCategory.HOSTED,
        is_official=True,
    ),
    RegistryDescriptor(
        id="smithery",
        name="Smithery",
        description="Hosted registry with OAuth and observability built in",
        url="https://api.smithery.ai/servers",
        category=RegistryCategory.HOSTED,
        is_official=True,
    ),
    RegistryDescriptor(
        id="glama",
        name="Glama MCP Servers",
        description="Large curated directory with categories and search",
        url="https://glama.ai/api/mcp/servers",
        category=RegistryCategory.CURATED,
        is_official=True,
    ),
    RegistryDescriptor(
        id="github-official",
        name="GitHub Official",
        description="Reference servers maintained in modelcontextprotocol/servers",
        url="https://api.github.com/repos/modelcontextprotocol/servers",
        category=RegistryCategory.GITHUB,
        is_official=True,
    ),
    RegistryDescriptor(
        id="awesome-punkpeye",
        name="Awesome MCP Servers",
        description="Community list maintained by @punkpeye",
        url="https://raw.githubusercontent.com/punkpeye/awesome-mcp-servers/main/servers.json",
        category=RegistryCategory.COMMUNITY,
    ),
    RegistryDescriptor(
        id="awesome-wong2",
        name="MCP Servers by wong2",
        description="Community collection behind mcpservers.org",
        url="https://raw.githubusercontent.com/wong2/awesome-mcp-servers/main/servers.json",
        category=RegistryCategory.COMMUNITY,
    ),
    RegistryDescriptor(
        id="mcp-get",
        name="mcp-get",
        description="CLI-oriented registry for installing MCP servers",
        url="https://mcp-get.com/api/servers",
        category=RegistryCategory.HOSTED,
    ),
    RegistryDescriptor(
        id="mcpservers-com",
        name="MCPServers.com",
        description="Directory of servers with setup guides",
        url="https://mcpservers.com/api/servers",
        category=RegistryCategory.CURATED,
    ),
    RegistryDescriptor(
        id="mcp-hub",
        name="MCPHub",
        description="Discovery and management platform for MCP servers",
        url="https://www.mcphub.com/api/servers",
        category=RegistryCategory.HOSTED,
    ),
    RegistryDescriptor(
        id="natoma",
        name="Natoma MCP",
        description="Hosted platform to discover and manage MCP servers",
        url="https://mcp.natoma.ai/api/servers",
        category=RegistryCategory.HOSTED,
    ),
    RegistryDescriptor(
        id="mcpverse",
        name="MCPVerse",
        description="Portal for building and hosting authenticated MCP servers",
        url="https://mcpverse.dev/api/servers",
        category=RegistryCategory.HOSTED,
    ),
]
