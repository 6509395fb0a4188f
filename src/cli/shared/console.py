"""Shared console output for CLI commands.

This module provides the rich console wrapper, confirmation prompts, the
rollout report table and the standard command error handling.
"""

from collections.abc import Callable
from functools import wraps

import typer
from rich.console import Console, ConsoleRenderable
from rich.panel import Panel
from rich.table import Table

from src.cli.deployment.rollout import RolloutError, RolloutReport, RolloutState
from src.core.config import ConfigError
from src.core.manifest import ManifestError, ManifestFailure
from src.core.vault import VaultError

_STATE_STYLES = {
    RolloutState.SUCCEEDED: "green",
    RolloutState.TIMED_OUT: "yellow",
    RolloutState.FAILED: "red",
    RolloutState.ROLLED_BACK: "magenta",
    RolloutState.SKIPPED: "dim",
}


class CLIConsole:
    """Rich console wrapper for consistent CLI output."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def print(self, msg: ConsoleRenderable | str | None = None) -> None:
        self.console.print(msg)

    def info(self, msg: str) -> None:
        self.console.print(f"[cyan]ℹ[/cyan]  {msg}")

    def ok(self, msg: str) -> None:
        self.console.print(f"[green]✅[/green] {msg}")

    def error(self, msg: str) -> None:
        self.console.print(f"[red]❌[/red] {msg}")

    def warn(self, msg: str) -> None:
        self.console.print(f"[yellow]⚠️[/yellow]  {msg}")

    def confirm_action(
        self,
        action: str,
        details: str | None = None,
        force: bool = False,
    ) -> bool:
        """Prompt user to confirm an action against a cluster.

        Args:
            action: Description of the action (e.g., "Upgrade 3 services")
            details: Additional details about what will be affected
            force: If True, skip the confirmation prompt

        Returns:
            True if the user confirmed, False otherwise
        """
        if force:
            return True

        warning_lines = [f"[bold yellow]⚠️  {action}[/bold yellow]"]
        if details:
            warning_lines.append(f"\n{details}")

        self.console.print(
            Panel(
                "\n".join(warning_lines),
                title="Confirmation Required",
                border_style="yellow",
            )
        )

        try:
            response = self.console.input(
                "\n[bold]Are you sure you want to proceed?[/bold] \\[y/N]: "
            )
            return response.strip().lower() in ("y", "yes")
        except (KeyboardInterrupt, EOFError):
            self.console.print("\n[dim]Cancelled.[/dim]")
            return False

    def handle_error(
        self, message: str, details: str | None = None, exit_code: int = 1
    ) -> None:
        """Handle an error by printing a message and exiting.

        Args:
            message: Error message to display
            details: Optional additional details
            exit_code: Exit code to use
        """
        self.error(f"[bold red]{message}[/bold red]")
        if details:
            self.console.print(Panel(details, title="Details", border_style="red"))
        raise typer.Exit(exit_code)

    def print_report(self, report: RolloutReport) -> None:
        """Print one row per service and a summary line."""
        table = Table(title=f"Rollout ({report.mode}) in {report.region}")
        table.add_column("Service", style="bold")
        table.add_column("Version")
        table.add_column("State")
        table.add_column("Elapsed", justify="right")
        table.add_column("Reason", overflow="fold")

        for outcome in report.outcomes:
            style = _STATE_STYLES.get(outcome.state, "white")
            table.add_row(
                outcome.service,
                outcome.version or "-",
                f"[{style}]{outcome.state.value}[/{style}]",
                f"{outcome.elapsed:.0f}s",
                outcome.message,
            )
        self.console.print(table)

        counts = ", ".join(
            f"{count} {state}" for state, count in sorted(report.summary().items()) if count
        )
        if report.ok:
            self.ok(f"All services succeeded ({counts})")
        else:
            self.warn(counts or "No services rolled out")


def with_error_handling(func: Callable[..., None]) -> Callable[..., None]:
    """Decorator to wrap command functions with standard error handling.

    Domain errors are printed and turned into exit code 1; an interrupt exits
    with 130.

    Args:
        func: The command function to wrap

    Returns:
        Wrapped function with error handling
    """

    @wraps(func)
    def wrapper(*args: object, **kwargs: object) -> None:
        try:
            func(*args, **kwargs)
        except RolloutError as e:
            console.handle_error(e.message, e.details)
        except ManifestFailure as e:
            console.handle_error(
                e.message, "This is a bug in shipyard, not in the manifest."
            )
        except ManifestError as e:
            console.handle_error(e.message)
        except (ConfigError, VaultError) as e:
            console.handle_error(str(e))
        except KeyboardInterrupt:
            console.print("\n[dim]Operation cancelled by user.[/dim]")
            raise typer.Exit(130) from None

    return wrapper


# Shared console instance for consistent output
console = CLIConsole()
