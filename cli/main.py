#!/usr/bin/env python3
"""
Light client CLI

Main entrypoint for the lightclient command-line tool.
"""

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from cli.commands import checkpoint, client, tx
from lightclient.config import LightClientConfig
from lightclient.core.errors import ConfigError
from lightclient.logging_config import setup_logging

# Initialize Typer app
app = typer.Typer(
    name="lightclient",
    help="Checkpoint light client for a proof-of-stake chain",
    add_completion=False,
)

# Console for rich output
console = Console()

# Add command groups
app.add_typer(checkpoint.app, name="checkpoint", help="Checkpoint certificates")
app.add_typer(tx.app, name="tx", help="Transaction proofs")

# Add standalone commands
app.command("init")(client.init_command)
app.command("status")(client.status_command)
app.command("sync")(client.sync_command)


@app.callback()
def root(
    ctx: typer.Context,
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="JSON config file (default: environment)"
    ),
    state_dir: Optional[str] = typer.Option(None, "--state-dir", help="State directory"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ERROR"),
):
    """Resolve configuration and logging for every command."""
    setup_logging(level=log_level)
    try:
        config = LightClientConfig.from_file(config_file) if config_file else LightClientConfig.from_env()
        ctx.obj = config.with_overrides(state_dir=state_dir)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)


@app.command()
def version():
    """Show version information."""
    from cli import __version__

    table = Table(show_header=False, box=None)
    table.add_row("[bold]Light client[/bold]", f"v{__version__}")
    table.add_row("Signature scheme", "Ed25519 aggregate")
    table.add_row("Snapshot format", "v1")

    console.print(table)


def main():
    """Main entrypoint."""
    app()


if __name__ == "__main__":
    main()
