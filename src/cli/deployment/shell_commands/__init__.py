"""Shell command abstractions for Helm rollout operations.

- helm: release upgrades, diffs, rollbacks and queries
- kubectl: rollout status polling

Usage:
    from src.cli.deployment.shell_commands import ShellCommands

    commands = ShellCommands(working_dir=Path("."))
    values = commands.helm.get_values("payments", "apps")
"""

from pathlib import Path

from .helm import HelmCommands
from .kubectl import KubectlCommands
from .runner import CommandRunner
from .types import CommandResult, HelmRevision


class ShellCommands:
    """Facade over the specialized command modules.

    Attributes:
        helm: Helm-related commands
        kubectl: Kubernetes kubectl commands
    """

    def __init__(self, working_dir: Path) -> None:
        self._working_dir = Path(working_dir)
        self._runner = CommandRunner(self._working_dir)
        self.helm = HelmCommands(self._runner)
        self.kubectl = KubectlCommands(self._runner)

    @property
    def working_dir(self) -> Path:
        return self._working_dir


__all__ = [
    "ShellCommands",
    "CommandResult",
    "HelmRevision",
    "HelmCommands",
    "KubectlCommands",
    "CommandRunner",
]
