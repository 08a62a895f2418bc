"""
Reading and writing client configuration files.

Each client keeps its MCP servers in a map under a root key of a JSON, JSONC,
TOML or YAML document. Installing or removing a server rewrites only that
entry; every other key in the document is preserved.
"""

import json
import logging
from pathlib import Path
from typing import Any

import toml
import yaml

from ..errors import ConfigurationError, InstallationFailedError
from .descriptors import ClientType, ConfigFormat, EntryStyle, get_descriptor

logger = logging.getLogger(__name__)

# Goose extension timeout (seconds) written for new entries
GOOSE_DEFAULT_TIMEOUT = 300


def strip_jsonc(text: str) -> str:
    """
    Remove comments and trailing commas from JSONC text.

    String literals are copied verbatim, so ``//`` inside a URL survives.
    """
    out: list[str] = []
    i = 0
    length = len(text)
    in_string = False

    while i < length:
        char = text[i]

        if in_string:
            out.append(char)
            if char == "\\" and i + 1 < length:
                out.append(text[i + 1])
                i += 2
                continue
            if char == '"':
                in_string = False
            i += 1
            continue

        if char == '"':
            in_string = True
            out.append(char)
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = length if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = length if end == -1 else end + 2
        elif char in "}]":
            # Drop a trailing comma before the closing bracket
            j = len(out) - 1
            while j >= 0 and out[j].isspace():
                j -= 1
            if j >= 0 and out[j] == ",":
                del out[j]
            out.append(char)
            i += 1
        else:
            out.append(char)
            i += 1

    return "".join(out)


def _sorted_tree(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _sorted_tree(value[key]) for key in sorted(value)}
    if isinstance(value, list):
        return [_sorted_tree(item) for item in value]
    return value


def parse_document(text: str, config_format: ConfigFormat) -> dict[str, Any]:
    """
    Parse a configuration document.

    Args:
        text: File contents
        config_format: Document syntax

    Returns:
        Top-level mapping (empty for an empty document)

    Raises:
        ValueError: Syntax error or a top level that is not a mapping
    """
    if not text.strip():
        return {}

    if config_format == ConfigFormat.TOML:
        data = toml.loads(text)
    elif config_format == ConfigFormat.YAML:
        data = yaml.safe_load(text)
    elif config_format == ConfigFormat.JSONC:
        data = json.loads(strip_jsonc(text))
    else:
        data = json.loads(text)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"top level is {type(data).__name__}, expected a mapping")
    return data


def dump_document(data: dict[str, Any], config_format: ConfigFormat) -> str:
    """Serialize a configuration document with sorted keys."""
    if config_format == ConfigFormat.TOML:
        return toml.dumps(_sorted_tree(data))
    if config_format == ConfigFormat.YAML:
        return yaml.safe_dump(data, sort_keys=True, default_flow_style=False)
    # JSONC files are rewritten as plain JSON; comments are not preserved
    return json.dumps(data, indent=2, sort_keys=True) + "\n"


def build_entry(
    style: EntryStyle,
    server_name: str,
    command: str,
    args: list[str],
    env: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Build one server entry in the client's native shape."""
    if style == EntryStyle.OPENCODE:
        entry: dict[str, Any] = {
            "type": "local",
            "command": [command, *args],
            "enabled": True,
        }
        if env:
            entry["environment"] = dict(env)
        return entry

    if style == EntryStyle.GOOSE:
        entry = {
            "name": server_name,
            "cmd": command,
            "args": list(args),
            "enabled": True,
            "type": "stdio",
            "timeout": GOOSE_DEFAULT_TIMEOUT,
        }
        if env:
            entry["envs"] = dict(env)
        return entry

    entry = {"command": command, "args": list(args)}
    if env:
        entry["env"] = dict(env)
    return entry


class ClientConfigStore:
    """Install and remove server entries in client configuration files."""

    def __init__(self, home: str | Path | None = None) -> None:
        """
        Initialize config store.

        Args:
            home: Home directory the path templates resolve against
        """
        self.home = Path(home).expanduser() if home else Path.home()

    def config_path(
        self, client_type: ClientType, project_dir: str | Path | None = None
    ) -> Path | None:
        descriptor = get_descriptor(client_type)
        return descriptor.resolve_config_path(
            self.home, Path(project_dir) if project_dir else None
        )

    def read(self, path: Path, config_format: ConfigFormat) -> dict[str, Any]:
        """
        Read and parse a configuration document.

        Raises:
            OSError: File cannot be read
            ValueError: Document cannot be parsed
        """
        text = path.read_text(encoding="utf-8")
        try:
            return parse_document(text, config_format)
        except (toml.TomlDecodeError, yaml.YAMLError) as e:
            raise ValueError(str(e)) from e

    def write(
        self, path: Path, data: dict[str, Any], config_format: ConfigFormat
    ) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dump_document(data, config_format), encoding="utf-8")

    def read_servers(self, path: Path, client_type: ClientType) -> dict[str, Any]:
        """
        Return the raw server map of a client configuration.

        A missing file, parse error or a root key that is not a mapping all
        yield an empty map.
        """
        descriptor = get_descriptor(client_type)
        if not path.exists():
            return {}
        try:
            document = self.read(path, descriptor.config_format)
        except (OSError, ValueError) as e:
            logger.warning(f"Cannot read {descriptor.display_name} config {path}: {e}")
            return {}

        servers = document.get(descriptor.root_key)
        if not isinstance(servers, dict):
            return {}
        return servers

    def install(
        self,
        server_name: str,
        client_type: ClientType,
        command: str,
        args: list[str],
        env: dict[str, str] | None = None,
        project_dir: str | Path | None = None,
    ) -> Path:
        """
        Add or replace a server entry in a client configuration.

        Args:
            server_name: Key of the entry under the root key
            client_type: Target client
            command: Launcher executable (e.g. npx)
            args: Launcher arguments
            env: Environment variables for the server
            project_dir: Write the project-level file instead of the user file

        Returns:
            Path of the written file

        Raises:
            ConfigurationError: The client has no configuration file
            InstallationFailedError: The file cannot be read, parsed or written
        """
        client_type = ClientType(client_type)
        descriptor = get_descriptor(client_type)
        path = self.config_path(client_type, project_dir)
        if path is None:
            raise ConfigurationError(
                f"{descriptor.display_name} has no configuration file"
                + (" for projects" if project_dir else ""),
                client=client_type.value,
            )

        try:
            document = self.read(path, descriptor.config_format) if path.exists() else {}
        except (OSError, ValueError) as e:
            raise InstallationFailedError(
                server_name, f"cannot read {path}: {e}", client=client_type.value
            ) from e

        servers = document.get(descriptor.root_key)
        if not isinstance(servers, dict):
            servers = {}
        servers[server_name] = build_entry(
            descriptor.entry_style, server_name, command, args, env
        )
        document[descriptor.root_key] = servers

        try:
            self.write(path, document, descriptor.config_format)
        except OSError as e:
            raise InstallationFailedError(
                server_name, f"cannot write {path}: {e}", client=client_type.value
            ) from e

        logger.info(f"Installed {server_name} into {descriptor.display_name} ({path})")
        return path

    def uninstall(
        self,
        server_name: str,
        client_type: ClientType,
        project_dir: str | Path | None = None,
    ) -> bool:
        """
        Remove a server entry from a client configuration.

        A missing or unreadable file, or an absent entry, is a no-op.

        Returns:
            True if an entry was removed

        Raises:
            ConfigurationError: The client has no configuration file
            InstallationFailedError: The updated file cannot be written
        """
        client_type = ClientType(client_type)
        descriptor = get_descriptor(client_type)
        path = self.config_path(client_type, project_dir)
        if path is None:
            raise ConfigurationError(
                f"{descriptor.display_name} has no configuration file"
                + (" for projects" if project_dir else ""),
                client=client_type.value,
            )
        if not path.exists():
            return False

        try:
            document = self.read(path, descriptor.config_format)
        except (OSError, ValueError) as e:
            logger.warning(f"Skipping uninstall of {server_name}: cannot read {path}: {e}")
            return False

        servers = document.get(descriptor.root_key)
        if not isinstance(servers, dict) or server_name not in servers:
            return False

        del servers[server_name]
        try:
            self.write(path, document, descriptor.config_format)
        except OSError as e:
            raise InstallationFailedError(
                server_name, f"cannot write {path}: {e}", client=client_type.value
            ) from e

        logger.info(f"Removed {server_name} from {descriptor.display_name} ({path})")
        return True
