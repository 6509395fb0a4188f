"""Rollout executors.

The orchestrator only talks to the ``RolloutExecutor`` interface; the Helm
implementation renders the completed manifest into a values file and drives
helm and kubectl through the shell command layer.
"""

from __future__ import annotations

import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

import yaml
from loguru import logger

from src.cli.deployment.shell_commands import ShellCommands
from src.core.manifest import Manifest
from src.core.manifest.models import REDACTED

from .constants import RolloutConstants
from .errors import HelmUpgradeFailure, RolloutError
from .upgrade import UpgradeData, UpgradeMode


class RolloutExecutor(ABC):
    """Capability the orchestrator drives; implementations must be thread safe."""

    @abstractmethod
    def installed_version(self, manifest: Manifest) -> str | None:
        """Version currently deployed, or None if the service is not installed."""

    @abstractmethod
    def upgrade(self, data: UpgradeData) -> None:
        """Dispatch the requested mode.

        Raises:
            HelmUpgradeFailure: If helm rejects the upgrade
        """

    @abstractmethod
    def rollout_status(self, manifest: Manifest) -> bool:
        """True once every replica runs the new revision."""

    @abstractmethod
    def rollback(self, manifest: Manifest) -> None:
        """Roll the release back to its previous revision.

        Raises:
            RolloutError: If the rollback fails
        """


def chart_values(manifest: Manifest, version: str | None) -> dict:
    """Chart values for a completed manifest (secrets included)."""
    values = manifest.model_dump(by_alias=True, exclude_none=True, mode="json")
    if version is not None:
        values["version"] = version
    return values


def obfuscate(text: str, manifest: Manifest) -> str:
    """Replace every raw secret value of the manifest in helm output."""
    for secret in sorted(manifest.get_secrets(), key=len, reverse=True):
        text = text.replace(secret, REDACTED)
    return text


class HelmExecutor(RolloutExecutor):
    """Executor backed by the helm and kubectl CLIs."""

    def __init__(
        self,
        commands: ShellCommands,
        chart_root: Path,
        constants: RolloutConstants | None = None,
    ) -> None:
        self.commands = commands
        self.chart_root = chart_root
        self.constants = constants or RolloutConstants()

    def _chart_path(self, manifest: Manifest) -> Path:
        return self.chart_root / (manifest.chart or "")

    def installed_version(self, manifest: Manifest) -> str | None:
        values = self.commands.helm.get_values(manifest.name, manifest.namespace)
        if not values:
            return None
        version = values.get("version")
        return str(version) if version else None

    def upgrade(self, data: UpgradeData) -> None:
        manifest = data.manifest
        if data.mode is UpgradeMode.ROLLBACK:
            self.rollback(manifest)
            return

        # the values file holds secrets, so it only lives for the helm call
        with tempfile.TemporaryDirectory(prefix="shipyard-") as tmp:
            values_file = Path(tmp) / f"{manifest.name}.yml"
            values_file.write_text(
                yaml.safe_dump(chart_values(manifest, data.version), sort_keys=False),
                encoding="utf-8",
            )

            if data.mode is UpgradeMode.DIFF:
                result = self.commands.helm.diff_upgrade(
                    manifest.name,
                    self._chart_path(manifest),
                    manifest.namespace,
                    values_file=values_file,
                )
                if not result.success:
                    raise HelmUpgradeFailure(
                        manifest.name, obfuscate(result.output, manifest)
                    )
                if result.stdout.strip():
                    diff = obfuscate(result.stdout, manifest)
                    logger.info(f"Diff for {manifest.name}:\n{diff}")
                else:
                    logger.info(f"No changes for {manifest.name}")
                return

            result = self.commands.helm.upgrade_install(
                manifest.name,
                self._chart_path(manifest),
                manifest.namespace,
                values_file=values_file,
                timeout=self.constants.HELM_TIMEOUT,
                on_output=lambda line: logger.debug(
                    f"[{manifest.name}] {obfuscate(line, manifest)}"
                ),
            )
        if not result.success:
            raise HelmUpgradeFailure(
                manifest.name, obfuscate(result.output, manifest)
            )
        logger.info(f"Dispatched {data.mode.value} of {manifest.name} at {data.version}")

    def rollout_status(self, manifest: Manifest) -> bool:
        return self.commands.kubectl.is_rolled_out(manifest.name, manifest.namespace)

    def rollback(self, manifest: Manifest) -> None:
        history = self.commands.helm.history(manifest.name, manifest.namespace)
        if len(history) < 2:
            raise RolloutError(
                f"Cannot roll back {manifest.name}: no previous revision",
            )
        result = self.commands.helm.rollback(
            manifest.name,
            manifest.namespace,
            timeout=self.constants.ROLLBACK_TIMEOUT,
        )
        if not result.success:
            raise RolloutError(f"Rollback of {manifest.name} failed", result.output)
        logger.info(
            f"Rolled back {manifest.name} from revision {history[-1].revision}"
        )
