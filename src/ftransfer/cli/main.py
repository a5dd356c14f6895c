"""
Main CLI entry point.
"""

import typer

from ftransfer import __version__
from ftransfer.cli import connections, keygen, run, serve


def version_callback(value: bool):
    """Callback to display version and exit."""
    if value:
        typer.echo(f"ftransfer version {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="ftransfer",
    help="ftransfer - moves files off SFTP, FTP and FTP-over-SSH servers into a local folder",
    add_completion=True,
)

# Register subcommands
app.add_typer(run.app, name="run")
app.add_typer(serve.app, name="serve")
app.add_typer(keygen.app, name="keygen")
app.add_typer(connections.app, name="connections")


@app.callback(invoke_without_command=True)
def entrypoint(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        help="Show version and exit.",
    ),
):
    """
    ftransfer - moves files off remote servers into a local folder.

    Run 'ftransfer <command> --help' for help on a specific command.
    """
    if ctx.invoked_subcommand is None:
        if not version:
            typer.echo(ctx.get_help())
            raise typer.Exit()


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
