"""Data types for shell command results."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "CommandResult",
    "HelmRevision",
]


@dataclass
class CommandResult:
    """Result of a command execution."""

    success: bool
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0

    @property
    def output(self) -> str:
        """Combined output, stderr last."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


@dataclass
class HelmRevision:
    """One entry of a release's history.

    Attributes:
        revision: Revision number
        status: deployed, superseded, failed, pending-upgrade, ...
        chart: Chart name and version
        app_version: Application version recorded by the chart
        description: Helm's description of the revision
    """

    revision: int
    status: str
    chart: str = ""
    app_version: str = ""
    description: str = ""
