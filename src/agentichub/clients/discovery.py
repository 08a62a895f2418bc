"""
Discovery of installed AI-agent clients and their configured MCP servers.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from .config_files import ClientConfigStore
from .descriptors import ClientDescriptor, ClientType, EntryStyle, get_descriptor

logger = logging.getLogger(__name__)

DEFAULT_APPLICATIONS_DIR = "/Applications"


@dataclass(frozen=True)
class InstalledServerRecord:
    """A server entry found in one or more client configurations."""

    name: str
    command: str
    args: list[str] = field(default_factory=list)
    env: dict[str, str] | None = None
    enabled: bool = True
    clients: frozenset[ClientType] = frozenset()


@dataclass(frozen=True)
class DiscoveredClient:
    """Install status and configured servers of one client."""

    client_type: ClientType
    is_installed: bool
    installed_servers: dict[str, InstalledServerRecord] = field(default_factory=dict)

    @property
    def descriptor(self) -> ClientDescriptor:
        return get_descriptor(self.client_type)

    @property
    def has_servers(self) -> bool:
        return bool(self.installed_servers)


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value]


def _string_map(value: Any) -> dict[str, str] | None:
    if not isinstance(value, dict):
        return None
    return {str(key): str(val) for key, val in value.items()}


def parse_server_entry(
    name: str, entry: Any, style: EntryStyle, client_type: ClientType
) -> InstalledServerRecord | None:
    """
    Build an installed-server record from one raw config entry.

    Returns None for entries without a command (remote-only servers and
    malformed entries).
    """
    if not isinstance(entry, dict):
        return None

    clients = frozenset({client_type})

    if style == EntryStyle.OPENCODE:
        command = entry.get("command")
        if isinstance(command, list) and command:
            parts = _string_list(command)
            return InstalledServerRecord(
                name=name,
                command=parts[0],
                args=parts[1:],
                env=_string_map(entry.get("environment")),
                enabled=entry.get("enabled", True) is not False,
                clients=clients,
            )
        if isinstance(command, str) and command:
            return InstalledServerRecord(
                name=name,
                command=command,
                args=_string_list(entry.get("args")),
                env=_string_map(entry.get("environment")),
                enabled=entry.get("enabled", True) is not False,
                clients=clients,
            )
        return None

    if style == EntryStyle.GOOSE:
        command = entry.get("cmd")
        if not isinstance(command, str) or not command:
            return None
        return InstalledServerRecord(
            name=name,
            command=command,
            args=_string_list(entry.get("args")),
            env=_string_map(entry.get("envs")),
            enabled=entry.get("enabled", True) is not False,
            clients=clients,
        )

    command = entry.get("command")
    args = entry.get("args")
    env = entry.get("env")
    # Zed nests the launcher: {"command": {"path": ..., "args": [...], "env": {...}}}
    if isinstance(command, dict):
        args = command.get("args", args)
        env = command.get("env", env)
        command = command.get("path")
    if not isinstance(command, str) or not command:
        return None

    return InstalledServerRecord(
        name=name,
        command=command,
        args=_string_list(args),
        env=_string_map(env),
        enabled=not bool(entry.get("disabled", False)),
        clients=clients,
    )


def merge_installed_servers(
    clients: Iterable[DiscoveredClient],
) -> dict[str, InstalledServerRecord]:
    """
    Merge per-client server maps into one map keyed by server name.

    A name reported by several clients yields one record whose client set is
    the union; the first record's command, args and env are kept.
    """
    merged: dict[str, InstalledServerRecord] = {}
    for client in clients:
        for name, record in client.installed_servers.items():
            existing = merged.get(name)
            if existing is None:
                merged[name] = record
            else:
                merged[name] = replace(
                    existing, clients=existing.clients | record.clients
                )
    return merged


class ClientDiscovery:
    """Detects installed clients and reads their configured servers."""

    def __init__(
        self,
        home: str | Path | None = None,
        applications_dir: str | Path = DEFAULT_APPLICATIONS_DIR,
        store: ClientConfigStore | None = None,
    ) -> None:
        """
        Initialize client discovery.

        Args:
            home: Home directory the path templates resolve against
            applications_dir: Directory holding desktop app bundles
            store: Config store used to parse configuration files
        """
        self.home = Path(home).expanduser() if home else Path.home()
        self.applications_dir = Path(applications_dir)
        self.store = store or ClientConfigStore(self.home)

    def is_installed(self, client_type: ClientType) -> bool:
        descriptor = get_descriptor(client_type)
        return any(
            marker.exists()
            for marker in descriptor.resolve_markers(self.home, self.applications_dir)
        )

    def discover(self, client_type: ClientType) -> DiscoveredClient:
        """
        Report whether a client is installed and which servers it configures.

        Args:
            client_type: Client to inspect

        Returns:
            DiscoveredClient (servers are only read for installed clients)
        """
        client_type = ClientType(client_type)
        descriptor = get_descriptor(client_type)

        if not self.is_installed(client_type):
            return DiscoveredClient(client_type, False)

        path = descriptor.resolve_config_path(self.home)
        if path is None:
            return DiscoveredClient(client_type, True)

        servers: dict[str, InstalledServerRecord] = {}
        for name, entry in self.store.read_servers(path, client_type).items():
            record = parse_server_entry(
                str(name), entry, descriptor.entry_style, client_type
            )
            if record is not None:
                servers[record.name] = record

        logger.debug(
            f"{descriptor.display_name}: {len(servers)} servers configured in {path}"
        )
        return DiscoveredClient(client_type, True, servers)

    def discover_all(self) -> list[DiscoveredClient]:
        """Discover every known client, in declaration order."""
        return [self.discover(client_type) for client_type in ClientType]
