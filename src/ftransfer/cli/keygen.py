"""
ftransfer keygen - Generate SSH key pairs for the configured connections.
"""

from pathlib import Path

import paramiko
import typer
from rich.console import Console

from ftransfer.config.loader import load_config
from ftransfer.exceptions import ConfigurationError
from ftransfer.utils.logging import get_logger

logger = get_logger("ftransfer.cli.keygen")
console = Console()

KEY_BITS = 2048

app = typer.Typer(name="keygen", help="Generate SSH keys for connections", invoke_without_command=True)


def generate_key_pair(key_path: Path, comment: str, bits: int = KEY_BITS) -> None:
    """Write an unencrypted RSA private key to ``key_path`` and its public half to ``<key_path>.pub``."""
    key = paramiko.RSAKey.generate(bits)
    key.write_private_key_file(str(key_path))
    key_path.chmod(0o600)
    key_path.with_name(key_path.name + ".pub").write_text(f"{key.get_name()} {key.get_base64()} {comment}\n")


def generate_keys_for_connections(names: list[str], keys_dir: Path) -> dict[str, bool]:
    """
    Generate one key pair per connection name, skipping names that already have one.

    Returns:
        Mapping of connection name to whether a key was generated
    """
    keys_dir.mkdir(parents=True, exist_ok=True)
    generated = {}
    for name in names:
        key_path = keys_dir / name
        if key_path.exists():
            logger.info(f"SSH key pair already exists for connection: {name}")
            generated[name] = False
            continue
        generate_key_pair(key_path, comment=f"ftransfer-{name}")
        logger.info(f"SSH key pair generated for connection: {name}")
        generated[name] = True
    return generated


@app.callback()
def keygen(
    ctx: typer.Context,
    keys_dir: Path = typer.Option(Path("keys"), "--keys-dir", help="Directory for generated keys (relative to project)"),
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Project directory"),
    env: str | None = typer.Option(None, help="Environment (selects config.<env>.yaml)"),
    config_file: Path | None = typer.Option(None, "--config", help="Explicit config file"),
) -> None:
    """
    Generate a 2048-bit RSA key pair per connection under keys/<name>.

    Install the .pub half on the server and point the connection's
    ssh_key_path at the private half.
    """
    if ctx.invoked_subcommand is not None:
        return

    try:
        config = load_config(project_dir, env=env, config_file=config_file)
        connections = config.connections
    except ConfigurationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    target = keys_dir if keys_dir.is_absolute() else project_dir / keys_dir
    try:
        results = generate_keys_for_connections([c.name for c in connections], target)
    except (OSError, paramiko.SSHException) as e:
        typer.echo(f"Error: failed to generate SSH keys: {e}", err=True)
        raise typer.Exit(1) from e

    for name, created in results.items():
        status = "[green]generated[/green]" if created else "[dim]exists[/dim]"
        console.print(f"{name}: {status} ({target / name})")
    console.print(f"\n[bold]SSH keys processed for {len(results)} connections[/bold]")
