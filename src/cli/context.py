"""CLI context and dependency container."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from src.cli.deployment.rollout import RolloutConstants
from src.cli.deployment.shell_commands import ShellCommands
from src.cli.shared.console import CLIConsole, console
from src.core.config import Config, Region, load_config, resolve_root


@dataclass(frozen=True)
class CLIContext:
    """Runtime dependencies for CLI commands."""

    console: CLIConsole
    root: Path
    config: Config
    commands: ShellCommands
    constants: RolloutConstants

    def region(self, name: str) -> Region:
        return self.config.get_region(name)


def build_cli_context(root: Path | None = None) -> CLIContext:
    """Build a CLIContext for a manifest root.

    Raises:
        ConfigError: If the root or its shipyard.yml is unusable
    """
    manifest_root = resolve_root(root)
    return CLIContext(
        console=console,
        root=manifest_root,
        config=load_config(manifest_root),
        commands=ShellCommands(manifest_root),
        constants=RolloutConstants(),
    )


def get_cli_context(ctx: typer.Context) -> CLIContext:
    """Return the CLIContext for a command, building it on first use.

    The root callback stores the ``--root`` path in ``obj``; the context is
    built lazily so configuration errors go through command error handling.
    """
    root_context = ctx.find_root()
    if isinstance(root_context.obj, CLIContext):
        return root_context.obj
    root = root_context.obj if isinstance(root_context.obj, Path) else None
    cli_context = build_cli_context(root)
    root_context.obj = cli_context
    return cli_context
