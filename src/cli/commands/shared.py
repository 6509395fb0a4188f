"""Shared utilities for CLI commands.

Re-exports the console and error handling, and defines the options most
commands take.
"""

from typing import Annotated

import typer

from src.cli.shared.console import CLIConsole, console, with_error_handling

RegionOption = Annotated[
    str, typer.Option("--region", "-r", help="Region to resolve manifests for")
]

__all__ = ["CLIConsole", "RegionOption", "console", "with_error_handling"]
