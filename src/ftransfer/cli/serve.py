"""
ftransfer serve - Scheduler plus management API.

Runs the transfer scheduler as background work of an HTTP service with:
- GET /api/v1/health - Health check
- GET /api/v1/files - Download ledger, paginated
- DELETE /api/v1/files - Clear the ledger
- POST /api/v1/files/sweep - Drop records past the retention horizon
- GET /api/v1/connections - Configured connections (no secrets)
- The web UI at the root URL, when built into service.web_dir
"""

from pathlib import Path

import typer

from ftransfer.cli.run import greeting, initialize_or_exit
from ftransfer.service.server import run_service

app = typer.Typer(name="serve", help="Run the scheduler with the management API", invoke_without_command=True)


@app.callback()
def serve(
    ctx: typer.Context,
    host: str | None = typer.Option(None, help="Host to bind to (default: config, 0.0.0.0)"),
    port: int | None = typer.Option(None, "--port", "-p", help="Port to bind to (default: config, 8080)"),
    no_ui: bool = typer.Option(False, "--no-ui", help="Disable web UI serving"),
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
    Run ftransfer as a long-running service.

    By default, serves the web UI at the root URL. Use --no-ui to disable.
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

    fatal = run_service(
        runtime,
        host=host or runtime.config.get("service.host", "0.0.0.0"),
        port=port or int(runtime.config.get("service.port", 8080)),
        enable_ui=not no_ui,
    )
    if fatal is not None:
        typer.echo(f"Error: {fatal}", err=True)
        raise typer.Exit(1)
