"""
Static table of supported AI-agent clients.

Each client keeps its MCP servers in one configuration file whose location,
syntax and root key differ per client. Paths are templates resolved against
the user's home directory and the applications directory.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class ClientType(str, Enum):
    # Desktop apps
    CLAUDE = "claude"
    CURSOR = "cursor"
    VSCODE = "vscode"
    WINDSURF = "windsurf"
    ZED = "zed"
    TRAE = "trae"
    KIRO = "kiro"
    ANTIGRAVITY = "antigravity"
    AMPCODE = "ampcode"

    # CLI agents
    CLAUDE_CODE = "claude-code"
    GITHUB_COPILOT = "github-copilot"
    OPENAI_CODEX = "openai-codex"
    GEMINI_CLI = "gemini-cli"
    OPENCODE = "opencode"
    GOOSE = "goose"

    # Editor extensions
    CLINE = "cline"
    ROO_CODE = "roo-code"
    KILO_CODE = "kilo-code"
    FACTORY_AI = "factory-ai"

    @property
    def descriptor(self) -> "ClientDescriptor":
        return CLIENT_DESCRIPTORS[self]


class ClientCategory(str, Enum):
    DESKTOP_APP = "desktop"
    CLI_AGENT = "cli"
    EDITOR_EXTENSION = "extension"

    @property
    def display_name(self) -> str:
        return {
            ClientCategory.DESKTOP_APP: "Desktop Apps",
            ClientCategory.CLI_AGENT: "CLI Agents",
            ClientCategory.EDITOR_EXTENSION: "VS Code Extensions",
        }[self]


class ConfigFormat(str, Enum):
    JSON = "json"
    JSONC = "jsonc"
    TOML = "toml"
    YAML = "yaml"


class EntryStyle(str, Enum):
    """Shape of one server entry under the root key."""

    # {"command": "npx", "args": [...], "env": {...}}
    STANDARD = "standard"
    # {"type": "local", "command": ["npx", ...], "environment": {...}, "enabled": true}
    OPENCODE = "opencode"
    # {"cmd": "npx", "args": [...], "envs": {...}, "enabled": true, "type": "stdio"}
    GOOSE = "goose"


DEFAULT_ROOT_KEY = "mcpServers"

_VSCODE_STORAGE = "{home}/Library/Application Support/Code/User/globalStorage"


@dataclass(frozen=True)
class ClientDescriptor:
    """Where and how one client stores its MCP server configuration."""

    client_type: ClientType
    display_name: str
    category: ClientCategory
    config_path: str | None
    install_markers: tuple[str, ...]
    project_config_path: str | None = None
    config_format: ConfigFormat = ConfigFormat.JSON
    root_key: str = DEFAULT_ROOT_KEY
    entry_style: EntryStyle = EntryStyle.STANDARD
    note: str | None = None

    def resolve_config_path(
        self, home: Path, project_dir: Path | None = None
    ) -> Path | None:
        """
        Resolve the configuration file for the user or a project.

        Args:
            home: User home directory
            project_dir: Project root; selects the project-level file

        Returns:
            Absolute path, or None when the client has no file for that scope
        """
        if project_dir is not None:
            if self.project_config_path is None:
                return None
            return Path(project_dir) / self.project_config_path
        if self.config_path is None:
            return None
        return Path(self.config_path.format(home=home))

    def resolve_markers(self, home: Path, applications_dir: Path) -> list[Path]:
        return [
            Path(marker.format(home=home, apps=applications_dir))
            for marker in self.install_markers
        ]


def _app(*names: str) -> tuple[str, ...]:
    return tuple(f"{{apps}}/{name}.app" for name in names)


def _cli(binary: str, *dirs: str) -> tuple[str, ...]:
    return (f"/usr/local/bin/{binary}",) + tuple(f"{{home}}/{d}" for d in dirs)


_DESCRIPTORS = [
    # Desktop apps
    ClientDescriptor(
        ClientType.CLAUDE,
        "Claude Desktop",
        ClientCategory.DESKTOP_APP,
        "{home}/Library/Application Support/Claude/claude_desktop_config.json",
        _app("Claude"),
        note="Settings > Developer > Edit Config",
    ),
    ClientDescriptor(
        ClientType.CURSOR,
        "Cursor",
        ClientCategory.DESKTOP_APP,
        "{home}/.cursor/mcp.json",
        _app("Cursor"),
        project_config_path=".cursor/mcp.json",
    ),
    ClientDescriptor(
        ClientType.VSCODE,
        "VS Code",
        ClientCategory.DESKTOP_APP,
        None,
        _app("Visual Studio Code"),
        project_config_path=".vscode/mcp.json",
        root_key="servers",
        note="User configuration is edited through 'MCP: Open User Configuration'",
    ),
    ClientDescriptor(
        ClientType.WINDSURF,
        "Windsurf",
        ClientCategory.DESKTOP_APP,
        "{home}/.codeium/windsurf/mcp_config.json",
        _app("Windsurf"),
        note="At most 100 tools can be active at once",
    ),
    ClientDescriptor(
        ClientType.ZED,
        "Zed",
        ClientCategory.DESKTOP_APP,
        "{home}/.config/zed/settings.json",
        _app("Zed"),
        project_config_path=".zed/settings.json",
        config_format=ConfigFormat.JSONC,
        root_key="context_servers",
    ),
    ClientDescriptor(
        ClientType.TRAE,
        "Trae",
        ClientCategory.DESKTOP_APP,
        None,
        _app("Trae"),
        note="Configured through the app UI only",
    ),
    ClientDescriptor(
        ClientType.KIRO,
        "Amazon Kiro",
        ClientCategory.DESKTOP_APP,
        "{home}/.kiro/settings/mcp.json",
        _app("Kiro", "Amazon Kiro"),
        project_config_path=".kiro/settings/mcp.json",
    ),
    ClientDescriptor(
        ClientType.ANTIGRAVITY,
        "Google Antigravity",
        ClientCategory.DESKTOP_APP,
        "{home}/.gemini/antigravity/mcp_config.json",
        _app("Antigravity", "Google Antigravity"),
    ),
    ClientDescriptor(
        ClientType.AMPCODE,
        "AMPCode",
        ClientCategory.DESKTOP_APP,
        "{home}/.config/amp/settings.json",
        _app("AMPCode", "AMP Code"),
        project_config_path=".amp/settings.json",
        root_key="amp.mcpServers",
    ),
    # CLI agents
    ClientDescriptor(
        ClientType.CLAUDE_CODE,
        "Claude Code",
        ClientCategory.CLI_AGENT,
        "{home}/.claude.json",
        _cli("claude", ".claude"),
        project_config_path=".mcp.json",
    ),
    ClientDescriptor(
        ClientType.GITHUB_COPILOT,
        "GitHub Copilot CLI",
        ClientCategory.CLI_AGENT,
        "{home}/.copilot/mcp-config.json",
        _cli("gh", ".copilot"),
        project_config_path=".copilot/mcp-config.json",
    ),
    ClientDescriptor(
        ClientType.OPENAI_CODEX,
        "OpenAI Codex CLI",
        ClientCategory.CLI_AGENT,
        "{home}/.codex/config.toml",
        _cli("codex", ".codex"),
        config_format=ConfigFormat.TOML,
        root_key="mcp_servers",
        note="stdio transport only",
    ),
    ClientDescriptor(
        ClientType.GEMINI_CLI,
        "Gemini CLI",
        ClientCategory.CLI_AGENT,
        "{home}/.gemini/settings.json",
        _cli("gemini", ".gemini"),
        project_config_path=".gemini/settings.json",
    ),
    ClientDescriptor(
        ClientType.OPENCODE,
        "OpenCode",
        ClientCategory.CLI_AGENT,
        "{home}/.config/opencode/opencode.json",
        _cli("opencode", ".config/opencode"),
        project_config_path="opencode.json",
        config_format=ConfigFormat.JSONC,
        root_key="mcp",
        entry_style=EntryStyle.OPENCODE,
    ),
    ClientDescriptor(
        ClientType.GOOSE,
        "Goose",
        ClientCategory.CLI_AGENT,
        "{home}/.config/goose/config.yaml",
        _cli("goose", ".config/goose"),
        config_format=ConfigFormat.YAML,
        root_key="extensions",
        entry_style=EntryStyle.GOOSE,
    ),
    # Editor extensions
    ClientDescriptor(
        ClientType.CLINE,
        "Cline",
        ClientCategory.EDITOR_EXTENSION,
        f"{_VSCODE_STORAGE}/saoudrizwan.claude-dev/settings/cline_mcp_settings.json",
        (f"{_VSCODE_STORAGE}/saoudrizwan.claude-dev",),
    ),
    ClientDescriptor(
        ClientType.ROO_CODE,
        "Roo Code",
        ClientCategory.EDITOR_EXTENSION,
        f"{_VSCODE_STORAGE}/rooveterinaryinc.roo-cline/settings/cline_mcp_settings.json",
        (f"{_VSCODE_STORAGE}/rooveterinaryinc.roo-cline",),
        project_config_path=".roo/mcp.json",
    ),
    ClientDescriptor(
        ClientType.KILO_CODE,
        "Kilo Code",
        ClientCategory.EDITOR_EXTENSION,
        f"{_VSCODE_STORAGE}/kilocode.kilo-code/settings/mcp_settings.json",
        (f"{_VSCODE_STORAGE}/kilocode.kilo-code",),
        project_config_path=".kilocode/mcp.json",
    ),
    ClientDescriptor(
        ClientType.FACTORY_AI,
        "Factory AI",
        ClientCategory.EDITOR_EXTENSION,
        "{home}/.factory/mcp.json",
        ("{home}/.factory",) + _app("Factory"),
        project_config_path=".factory/mcp.json",
    ),
]

CLIENT_DESCRIPTORS: dict[ClientType, ClientDescriptor] = {
    descriptor.client_type: descriptor for descriptor in _DESCRIPTORS
}


def get_descriptor(client: ClientType | str) -> ClientDescriptor:
    """
    Look up a client descriptor by type or identifier.

    Raises:
        ValueError: Unknown client identifier
    """
    return CLIENT_DESCRIPTORS[ClientType(client)]
