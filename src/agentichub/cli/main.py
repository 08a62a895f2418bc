"""
Main CLI entry point for AgenticHub.

This module provides the command-line interface for browsing MCP registries
and skill catalogs and for managing the MCP servers configured in locally
installed AI-agent clients.
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any

import rich_click as click
import structlog
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..clients.descriptors import ClientCategory, ClientType
from ..clients.discovery import ClientDiscovery
from ..config.loader import ConfigLoader, HubSettings, configure_logging
from ..errors import ConfigurationError, HubError
from ..hub import HubState, SortOption, launch_config, server_key
from ..registry.models import DEFAULT_REGISTRIES, PackageRegistryKind
from ..skills.client import SKILL_PROVIDERS

# Configure rich-click styling
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.STYLE_METAVAR = "bold yellow"
click.rich_click.STYLE_USAGE_COMMAND = "bold"
click.rich_click.STYLE_USAGE_PROG = "bold blue"
click.rich_click.STYLE_OPTION = "bold cyan"
click.rich_click.STYLE_ARGUMENT = "bold yellow"
click.rich_click.STYLE_COMMAND = "bold green"

# Create rich console for formatted output
console = Console()

# Configure structured logging for CLI
structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.dev.ConsoleRenderer(),
    ],
    logger_factory=structlog.WriteLoggerFactory(file=sys.stderr),
    wrapper_class=structlog.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

FORMAT_OPTION = click.option(
    "--format", "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format",
)


class HubCLIContext:
    """CLI context for sharing state between commands."""

    def __init__(self):
        self.config_path: str | None = None
        self.settings: HubSettings = HubSettings()
        self.verbose: bool = False

    def create_hub(self) -> HubState:
        return HubState.from_settings(self.settings)


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def _fail(message: str, error: Exception | None = None) -> None:
    console.print(f"[red]✗ {message}[/red]")
    if error is not None:
        logger.debug("Command failed", error=str(error))
    sys.exit(1)


def _run(coro_factory) -> Any:
    """Run a coroutine, mapping AgenticHub errors to a non-zero exit."""
    try:
        return asyncio.run(coro_factory())
    except ConfigurationError as e:
        _fail(f"Configuration error: {e}", e)
    except HubError as e:
        _fail(str(e), e)


@click.group()
@click.option(
    "--config", "-c",
    type=click.Path(exists=True),
    help="Path to configuration file"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose output"
)
@click.version_option(package_name="agentichub")
@click.pass_context
def cli(ctx: click.Context, config: str | None, verbose: bool) -> None:
    """
    [bold blue]AgenticHub[/bold blue] - MCP registries, agent skills and client configuration.

    Browse MCP servers from public registries, look up agent skills, and
    install or remove servers in the configuration files of AI-agent clients
    such as Claude Desktop, Cursor or Codex.
    """
    ctx.ensure_object(HubCLIContext)
    ctx.obj.config_path = config
    ctx.obj.verbose = verbose

    config_loader = ConfigLoader()
    if config is None:
        default_path = config_loader.get_default_config_path()
        if default_path.exists():
            config = str(default_path)

    try:
        ctx.obj.settings = config_loader.load_settings(config)
    except ConfigurationError as e:
        _fail(f"Configuration error: {e}", e)

    configure_logging(ctx.obj.settings.logging, verbose=verbose)


@cli.command()
@FORMAT_OPTION
@click.pass_context
def registries(ctx: click.Context, output_format: str) -> None:
    """List the selectable MCP registries."""
    active = ctx.obj.settings.registry.active

    if output_format == "json":
        _echo_json(
            {
                "active": active,
                "registries": [r.model_dump(mode="json") for r in DEFAULT_REGISTRIES],
            }
        )
        return

    table = Table(title="MCP Registries")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Category", style="magenta")
    table.add_column("URL", style="dim")

    for registry in DEFAULT_REGISTRIES:
        marker = " [green]●[/green]" if registry.id == active else ""
        name = registry.name + (" [yellow](official)[/yellow]" if registry.is_official else "")
        table.add_row(registry.id + marker, name, registry.category.value, registry.url)

    console.print(table)


@cli.command()
@click.argument("query", default="")
@click.option(
    "--kind",
    type=click.Choice([k.value for k in PackageRegistryKind.known()]),
    help="Only servers offering this package type",
)
@click.option(
    "--sort",
    type=click.Choice([s.value for s in SortOption]),
    default=SortOption.STARS.value,
    help="Sort order",
)
@click.option("--registry", "registry_id", help="Registry to browse")
@click.option("--limit", type=int, default=50, help="Maximum rows to show")
@FORMAT_OPTION
@click.pass_context
def servers(
    ctx: click.Context,
    query: str,
    kind: str | None,
    sort: str,
    registry_id: str | None,
    limit: int,
    output_format: str,
) -> None:
    """Search MCP servers in the active registry."""

    async def _servers():
        hub = ctx.obj.create_hub()
        try:
            if registry_id:
                hub.registry.set_active_registry(registry_id)
            await asyncio.gather(hub.load_registry(), hub.load_metadata())
            if hub.error:
                raise hub.error

            results = hub.filtered_servers(
                query,
                package_kind=PackageRegistryKind(kind) if kind else None,
                sort=SortOption(sort),
            )
            return hub, results[:limit]
        finally:
            await hub.close()

    hub, results = _run(_servers)

    if output_format == "json":
        rows = []
        for server in results:
            metadata = hub.metadata_for(server)
            rows.append(
                {
                    "name": server.name,
                    "title": server.display_name,
                    "description": server.description,
                    "version": server.version,
                    "repository": server.repository_url,
                    "packages": [p.registry_kind.value for p in server.packages],
                    "stars": metadata.stars if metadata else None,
                    "activity": metadata.activity_status().label if metadata else None,
                }
            )
        _echo_json({"registry": hub.registry.active_registry.id, "servers": rows})
        return

    if not results:
        console.print("No servers found")
        return

    table = Table(title=f"{hub.registry.active_registry.name} ({len(results)} shown)")
    table.add_column("Name", style="cyan")
    table.add_column("Packages", style="magenta")
    table.add_column("Stars", justify="right", style="yellow")
    table.add_column("Activity")
    table.add_column("Description", style="dim", max_width=60)

    for server in results:
        metadata = hub.metadata_for(server)
        kinds = ", ".join(
            dict.fromkeys(p.registry_kind.display_name for p in server.packages)
        )
        table.add_row(
            server.display_name,
            kinds or "-",
            metadata.formatted_stars if metadata else "-",
            metadata.activity_status().label if metadata else "-",
            server.description or "",
        )

    console.print(table)


@cli.command()
@click.option("--all", "show_all", is_flag=True, help="Include clients that are not installed")
@FORMAT_OPTION
@click.pass_context
def clients(ctx: click.Context, show_all: bool, output_format: str) -> None:
    """Show AI-agent clients detected on this machine."""
    settings = ctx.obj.settings
    discovery = ClientDiscovery(
        settings.clients.home, applications_dir=settings.clients.applications_dir
    )
    discovered = discovery.discover_all()
    if not show_all:
        discovered = [c for c in discovered if c.is_installed or c.installed_servers]

    if output_format == "json":
        _echo_json(
            {
                "clients": [
                    {
                        "id": client.client_type.value,
                        "name": client.descriptor.display_name,
                        "category": client.descriptor.category.value,
                        "installed": client.is_installed,
                        "config_path": client.descriptor.config_path,
                        "servers": sorted(client.installed_servers),
                    }
                    for client in discovered
                ]
            }
        )
        return

    for category in ClientCategory:
        members = [c for c in discovered if c.descriptor.category == category]
        if not members:
            continue

        table = Table(title=category.display_name)
        table.add_column("ID", style="cyan")
        table.add_column("Client")
        table.add_column("Status")
        table.add_column("Servers", justify="right")
        table.add_column("Config", style="dim")

        for client in members:
            status = "[green]✓ installed[/green]" if client.is_installed else "[dim]- absent[/dim]"
            table.add_row(
                client.client_type.value,
                client.descriptor.display_name,
                status,
                str(len(client.installed_servers)),
                client.descriptor.config_path or client.descriptor.note or "-",
            )
        console.print(table)


@cli.command()
@FORMAT_OPTION
@click.pass_context
def installed(ctx: click.Context, output_format: str) -> None:
    """List MCP servers configured across all clients."""

    async def _installed():
        hub = ctx.obj.create_hub()
        try:
            await hub.discover_clients()
            if hub.error:
                raise hub.error
            return hub.installed_servers
        finally:
            await hub.close()

    records = _run(_installed)

    if output_format == "json":
        _echo_json(
            {
                "servers": [
                    {
                        "name": record.name,
                        "command": record.command,
                        "args": record.args,
                        "env": sorted(record.env or {}),
                        "enabled": record.enabled,
                        "clients": sorted(c.value for c in record.clients),
                    }
                    for record in records
                ]
            }
        )
        return

    if not records:
        console.print("No MCP servers configured")
        return

    table = Table(title="Installed MCP Servers")
    table.add_column("Name", style="cyan")
    table.add_column("Command")
    table.add_column("Enabled")
    table.add_column("Clients", style="magenta")

    for record in records:
        table.add_row(
            record.name,
            " ".join([record.command, *record.args]),
            "✓" if record.enabled else "✗",
            ", ".join(sorted(c.descriptor.display_name for c in record.clients)),
        )

    console.print(table)


def _parse_env(pairs: tuple[str, ...]) -> dict[str, str] | None:
    env: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--env")
        env[key] = value
    return env or None


@cli.command()
@click.argument("name")
@click.option(
    "--client", "client_id",
    type=click.Choice([c.value for c in ClientType]),
    required=True,
    help="Target client",
)
@click.option("--command", "command", help="Launcher command (looked up in the registry when omitted)")
@click.option("--arg", "args", multiple=True, help="Launcher argument (repeatable)")
@click.option("--env", "env_pairs", multiple=True, help="Environment variable KEY=VALUE (repeatable)")
@click.option(
    "--project-dir",
    type=click.Path(file_okay=False),
    help="Write the project-level configuration in this directory",
)
@click.pass_context
def install(
    ctx: click.Context,
    name: str,
    client_id: str,
    command: str | None,
    args: tuple[str, ...],
    env_pairs: tuple[str, ...],
    project_dir: str | None,
) -> None:
    """Install an MCP server into a client configuration."""
    env = _parse_env(env_pairs)

    async def _install():
        hub = ctx.obj.create_hub()
        try:
            entry_name, launch_command, launch_args, launch_env = (
                name, command, list(args), env
            )
            if launch_command is None:
                await hub.load_registry()
                if hub.error:
                    raise hub.error
                server = hub.find_server(name)
                resolved = launch_config(server) if server else None
                if resolved is None:
                    raise ConfigurationError(
                        f"No installable package found for '{name}'; pass --command"
                    )
                launch_command, launch_args, registry_env = resolved
                entry_name = server_key(server)
                launch_env = {**(registry_env or {}), **(env or {})} or None

            return await hub.install_server(
                entry_name,
                ClientType(client_id),
                launch_command,
                launch_args,
                launch_env,
                project_dir=project_dir,
            ), entry_name
        finally:
            await hub.close()

    path, entry_name = _run(_install)
    console.print(f"[green]✓ Installed {entry_name} into {client_id}[/green] ({path})")


@cli.command()
@click.argument("name")
@click.option(
    "--client", "client_id",
    type=click.Choice([c.value for c in ClientType]),
    required=True,
    help="Target client",
)
@click.option(
    "--project-dir",
    type=click.Path(file_okay=False),
    help="Edit the project-level configuration in this directory",
)
@click.pass_context
def uninstall(ctx: click.Context, name: str, client_id: str, project_dir: str | None) -> None:
    """Remove an MCP server from a client configuration."""

    async def _uninstall():
        hub = ctx.obj.create_hub()
        try:
            return await hub.uninstall_server(
                name, ClientType(client_id), project_dir=project_dir
            )
        finally:
            await hub.close()

    if _run(_uninstall):
        console.print(f"[green]✓ Removed {name} from {client_id}[/green]")
    else:
        console.print(f"[yellow]{name} is not configured in {client_id}[/yellow]")


@cli.command()
@click.argument("query", default="")
@click.option(
    "--provider",
    type=click.Choice(list(SKILL_PROVIDERS)),
    help="Skill catalog to query",
)
@click.option("--limit", type=int, default=50, help="Maximum rows to show")
@FORMAT_OPTION
@click.pass_context
def skills(
    ctx: click.Context, query: str, provider: str | None, limit: int, output_format: str
) -> None:
    """Search agent skills, or list popular skills when no query is given."""
    if provider:
        ctx.obj.settings.skills.provider = provider

    async def _skills():
        hub = ctx.obj.create_hub()
        try:
            if query:
                return await hub.search_skills(query)
            await hub.load_skills()
            return hub.skills
        finally:
            await hub.close()

    results = _run(_skills)[:limit]

    if output_format == "json":
        _echo_json(
            {
                "skills": [
                    {**skill.model_dump(), "install_command": skill.install_command}
                    for skill in results
                ]
            }
        )
        return

    if not results:
        console.print("No skills found")
        return

    table = Table(title="Agent Skills")
    table.add_column("Skill", style="cyan")
    table.add_column("Source")
    table.add_column("Installs", justify="right", style="yellow")
    table.add_column("Provider", style="dim")

    for skill in results:
        table.add_row(skill.display_name, skill.source, skill.formatted_installs, skill.provider)

    console.print(table)
    console.print("[dim]Install with: npx skills add <source>[/dim]")


@cli.group()
def config():
    """Configuration management."""


@config.command()
@click.option(
    "--output", "-o",
    type=click.Path(),
    help="Output configuration file path"
)
def init(output: str | None) -> None:
    """Initialize default configuration file."""
    config_loader = ConfigLoader()
    config_path = Path(output) if output else config_loader.get_default_config_path()

    try:
        config_loader.create_example_config(config_path)
    except ConfigurationError as e:
        _fail(f"Error creating configuration: {e}", e)

    console.print(
        Panel(
            f"Created default configuration at [bold]{config_path}[/bold]",
            title="[bold green]AgenticHub[/bold green]",
            title_align="left",
            border_style="green",
        )
    )


@config.command()
@click.argument("config_file", type=click.Path(exists=True))
def validate(config_file: str) -> None:
    """Validate configuration file."""
    config_loader = ConfigLoader()
    try:
        config_loader.load_from_file(config_file)
    except ConfigurationError as e:
        console.print("[red]Configuration validation failed:[/red]")
        console.print(f"   {e}")
        sys.exit(1)

    console.print("[green]✓ Configuration is valid[/green]")


def main() -> None:
    """Main CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
