"""kubectl command abstractions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .types import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner

ROLLED_OUT_MARKER = "successfully rolled out"


class KubectlCommands:
    """kubectl shell commands used while waiting for rollouts."""

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    def current_context(self) -> str:
        result = self._runner.run(["kubectl", "config", "current-context"])
        return result.stdout.strip() if result.success else ""

    def rollout_status(
        self,
        name: str,
        namespace: str,
        resource_type: str = "deployment",
    ) -> CommandResult:
        """Single, non-blocking rollout status query.

        Returns:
            CommandResult; stdout holds kubectl's progress message
        """
        cmd = [
            "kubectl",
            "rollout",
            "status",
            f"{resource_type}/{name}",
            "-n",
            namespace,
            "--watch=false",
        ]
        return self._runner.run(cmd)

    def is_rolled_out(self, name: str, namespace: str) -> bool:
        """Whether every replica of the deployment runs the new revision."""
        result = self.rollout_status(name, namespace)
        return result.success and ROLLED_OUT_MARKER in result.stdout
