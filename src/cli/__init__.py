"""Main CLI application module.

This module provides the main entry point for the shipyard CLI.

Commands:
- validate: merge, reconcile and validate manifests
- show: print a completed manifest with secrets redacted
- graph: dependency ordered rollout plan
- rollout: roll services out to a region
- secrets: secret store pre-flight checks
- list: services and regions
"""

import sys
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger

from .commands import graph, list_app, rollout, secrets_app, show, validate

# Create the main CLI application
app = typer.Typer(
    help="🚢 Shipyard - manifest resolution and parallel rollouts",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def configure_logging(verbose: bool = False) -> None:
    """Route loguru to stderr at INFO, or DEBUG with ``--verbose``."""
    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if verbose else "INFO",
        format="<dim>{time:HH:mm:ss}</dim> <level>{level: <7}</level> {message}",
    )


@app.callback()
def main_callback(
    ctx: typer.Context,
    root: Annotated[
        Path | None,
        typer.Option(
            "--root",
            help="Manifest root (default: $SHIPYARD_MANIFEST_DIR or the current directory)",
        ),
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Show debug logging")
    ] = False,
) -> None:
    configure_logging(verbose)
    # the CLIContext is built lazily from this path by the commands
    ctx.obj = root


app.command()(validate)
app.command()(show)
app.command()(graph)
app.command()(rollout)
app.add_typer(secrets_app, name="secrets")
app.add_typer(list_app, name="list")


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
