"""
ftransfer connections - Validate the configuration and show the group split.
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from ftransfer.config.loader import load_config
from ftransfer.connections.manager import probe_connections
from ftransfer.core.scheduler import split_connections
from ftransfer.exceptions import ConfigurationError

console = Console()

app = typer.Typer(name="connections", help="Show configured connections", invoke_without_command=True)


def _reachability(value: bool | None) -> str:
    if value is None:
        return "[dim]-[/dim]"
    return "[green]yes[/green]" if value else "[red]no[/red]"


@app.callback()
def connections(
    ctx: typer.Context,
    threads: int | None = typer.Option(None, "--threads", "-t", help="Number of connection groups (default: config, 5)"),
    probe: bool = typer.Option(False, "--probe", help="Check TCP reachability of every host"),
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Project directory"),
    env: str | None = typer.Option(None, help="Environment (selects config.<env>.yaml)"),
    config_file: Path | None = typer.Option(None, "--config", help="Explicit config file"),
) -> None:
    """
    Validate every connection and print how they are split into groups.
    """
    if ctx.invoked_subcommand is not None:
        return

    try:
        config = load_config(project_dir, env=env, config_file=config_file)
        if threads is not None:
            config.data["scheduler"]["groups"] = threads
        config.validate()
        conns = config.connections
    except ConfigurationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    if probe:
        conns = probe_connections(conns, timeout_s=float(config.get("scheduler.probe_timeout_s", 2)))

    groups = split_connections(conns, int(config.get("scheduler.groups", 5)))

    table = Table(title=f"Connections ({len(conns)})", show_header=True)
    table.add_column("Group", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Protocol")
    table.add_column("Address")
    table.add_column("Path")
    table.add_column("Depth", justify="right")
    table.add_column("Filter")
    table.add_column("Auth")
    table.add_column("Reachable")

    for group_name, members in groups.items():
        for conn in members:
            table.add_row(
                group_name,
                conn.name,
                conn.protocol.value,
                f"{conn.host}:{conn.port}",
                conn.remote_path,
                str(conn.max_depth),
                conn.file_name_regex or "[dim]*[/dim]",
                "key" if conn.private_key_path else "password",
                _reachability(conn.reachable),
            )

    console.print(table)
    empty = [name for name, members in groups.items() if not members]
    if empty:
        console.print(f"[dim]Empty groups: {', '.join(empty)}[/dim]")
