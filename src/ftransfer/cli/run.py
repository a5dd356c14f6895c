"""
ftransfer run - Run the transfer scheduler in the foreground.

Every configured connection is polled by its group until SIGINT/SIGTERM;
in-flight transfers get the configured grace period to finish.
"""

from pathlib import Path

import typer
from rich.console import Console

from ftransfer.core.initialization import Runtime, initialize
from ftransfer.core.scheduler import run_forever
from ftransfer.exceptions import InitializationError
from ftransfer.utils.logging import get_logger

logger = get_logger("ftransfer.cli.run")
console = Console()

BANNER = r"""
  __ _                        __
 / _| |                      / _|
| |_| |_ _ __ __ _ _ __  ___| |_ ___ _ __
|  _| __| '__/ _` | '_ \/ __|  _/ _ \ '__|
| | | |_| | | (_| | | | \__ \ ||  __/ |
|_|  \__|_|  \__,_|_| |_|___/_| \___|_|
"""


def greeting() -> None:
    console.print(BANNER, style="bold cyan", highlight=False)


def initialize_or_exit(
    project_dir: Path,
    env: str | None,
    config_file: Path | None,
    *,
    threads: int | None,
    download: Path | None,
    truncate: bool,
    clean: bool,
    debug: bool,
) -> Runtime:
    """Initialize the project, turning InitializationError into exit code 1."""
    try:
        runtime = initialize(
            project_dir,
            env=env,
            config_file=config_file,
            debug=debug,
            groups=threads,
            download_dir=download,
            truncate=truncate,
            clean=clean,
        )
    except InitializationError as e:
        logger.error(f"Initialization failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    if not debug:
        log_file = runtime.config.get("logging.file", "logs/ftransfer.log")
        console.print(f"[dim]Logging to {log_file}; use --debug for console output[/dim]")
    return runtime


app = typer.Typer(name="run", help="Run the transfer scheduler", invoke_without_command=True)


@app.callback()
def run(
    ctx: typer.Context,
    threads: int | None = typer.Option(None, "--threads", "-t", help="Number of connection groups (default: config, 5)"),
    download: Path | None = typer.Option(None, "--download", help="Directory for storing downloaded files"),
    truncate: bool = typer.Option(False, "--truncate", help="Clear the download ledger before starting"),
    clean: bool = typer.Option(False, "--clean", help="Recreate the download folder before starting"),
    debug: bool = typer.Option(False, "--debug", help="Debug logging to the console"),
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Project directory"),
    env: str | None = typer.Option(None, help="Environment (selects config.<env>.yaml)"),
    config_file: Path | None = typer.Option(None, "--config", help="Explicit config file"),
) -> None:
    """
    Run the transfer scheduler until interrupted.
    """
    if ctx.invoked_subcommand is not None:
        return

    greeting()
    runtime = initialize_or_exit(
        project_dir,
        env,
        config_file,
        threads=threads,
        download=download,
        truncate=truncate,
        clean=clean,
        debug=debug,
    )

    fatal = run_forever(runtime.scheduler, grace_s=runtime.shutdown_grace_s)
    if fatal is not None:
        typer.echo(f"Error: {fatal}", err=True)
        raise typer.Exit(1)
