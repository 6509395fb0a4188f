"""Helm command abstractions.

Release upgrades, diffs, rollbacks and queries against a cluster.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .types import CommandResult, HelmRevision

if TYPE_CHECKING:
    from .runner import CommandRunner


class HelmCommands:
    """Helm-related shell commands.

    Provides operations for:
    - Release management (upgrade --install, rollback)
    - Change previews (helm diff plugin)
    - Queries (deployed values, history)
    """

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize Helm commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    # =========================================================================
    # Release Management
    # =========================================================================

    def upgrade_install(
        self,
        release_name: str,
        chart_path: Path,
        namespace: str,
        *,
        values_file: Path,
        timeout: str = "10m",
        on_output: Callable[[str], None] | None = None,
    ) -> CommandResult:
        """Install or upgrade a release from a generated values file.

        Uses `helm upgrade --install` so a missing release is installed.
        Helm does not wait; the caller polls the rollout itself.

        Args:
            release_name: Release name (the service name)
            chart_path: Path to the chart directory
            namespace: Kubernetes namespace of the region
            values_file: Completed manifest rendered as chart values
            timeout: Helm's own operation timeout
            on_output: Optional callback receiving each output line

        Returns:
            CommandResult with upgrade status

        Example:
            >>> helm.upgrade_install(
            ...     "payments",
            ...     Path("charts/base"),
            ...     "apps",
            ...     values_file=Path("/tmp/payments.yml"),
            ... )
        """
        cmd = [
            "helm",
            "upgrade",
            "--install",
            release_name,
            str(chart_path),
            "--namespace",
            namespace,
            "-f",
            str(values_file),
            "--timeout",
            timeout,
        ]

        if on_output:
            return self._runner.run_streaming(cmd, on_output=on_output)
        return self._runner.run(cmd)

    def diff_upgrade(
        self,
        release_name: str,
        chart_path: Path,
        namespace: str,
        *,
        values_file: Path,
    ) -> CommandResult:
        """Preview an upgrade with the helm-diff plugin (no mutation).

        Returns:
            CommandResult whose stdout is the diff (empty when nothing changes)
        """
        cmd = [
            "helm",
            "diff",
            "upgrade",
            release_name,
            str(chart_path),
            "--namespace",
            namespace,
            "-f",
            str(values_file),
            "--allow-unreleased",
            "--no-color",
        ]
        return self._runner.run(cmd)

    def rollback(
        self,
        release_name: str,
        namespace: str,
        revision: int | None = None,
        *,
        wait: bool = True,
        timeout: str = "5m",
    ) -> CommandResult:
        """Rollback a release to a previous revision.

        Args:
            release_name: Name of the release to rollback
            namespace: Kubernetes namespace
            revision: Specific revision to rollback to (default: previous revision)
            wait: Whether to wait for rollback to complete
            timeout: Maximum time to wait for rollback

        Returns:
            CommandResult with rollback status
        """
        cmd = ["helm", "rollback", release_name, "-n", namespace]
        if revision is not None:
            cmd.append(str(revision))
        if wait:
            cmd.append("--wait")
        cmd.extend(["--timeout", timeout])
        return self._runner.run(cmd)

    # =========================================================================
    # Queries
    # =========================================================================

    def get_values(self, release_name: str, namespace: str) -> dict[str, Any] | None:
        """Values the release was last deployed with.

        Returns:
            The values, or None if the release is not installed
        """
        cmd = ["helm", "get", "values", release_name, "-n", namespace, "-o", "json"]
        result = self._runner.run(cmd)
        if not result.success or not result.stdout.strip():
            return None
        try:
            values = json.loads(result.stdout)
        except json.JSONDecodeError:
            return None
        return values if isinstance(values, dict) else None

    def history(
        self,
        release_name: str,
        namespace: str,
        max_revisions: int = 10,
    ) -> list[HelmRevision]:
        """Get release history, oldest first.

        Args:
            release_name: Name of the release
            namespace: Kubernetes namespace
            max_revisions: Maximum number of revisions to return

        Returns:
            Parsed revisions (empty if the release does not exist)
        """
        cmd = [
            "helm",
            "history",
            release_name,
            "-n",
            namespace,
            "-o",
            "json",
            "--max",
            str(max_revisions),
        ]

        result = self._runner.run(cmd)
        if not result.success or not result.stdout:
            return []

        try:
            entries = json.loads(result.stdout)
        except json.JSONDecodeError:
            return []
        return [
            HelmRevision(
                revision=int(e.get("revision", 0)),
                status=e.get("status", ""),
                chart=e.get("chart", ""),
                app_version=e.get("app_version", ""),
                description=e.get("description", ""),
            )
            for e in entries
        ]
