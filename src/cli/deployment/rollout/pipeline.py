"""Preparation of services for rollout.

For each service, in order: load and merge, reconcile secrets, validate.
A service that fails any step is reported as skipped and the others carry on.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from src.core.config import Config, Region
from src.core.manifest import (
    Manifest,
    ManifestError,
    ManifestFailure,
    SecretReconciler,
    build,
    load_manifest,
    template_context,
    verify,
)
from src.core.vault import SecretStore, VaultError

from .orchestrator import RolloutOrchestrator
from .report import RolloutOutcome, RolloutReport
from .upgrade import UpgradeMode


@dataclass
class PreparedRollout:
    """Manifests ready to dispatch plus the services excluded on the way."""

    manifests: list[Manifest] = field(default_factory=list)
    skipped: list[RolloutOutcome] = field(default_factory=list)


class RolloutPipeline:
    """Turns service names into completed, validated manifests for a region."""

    def __init__(
        self,
        root: Path,
        config: Config,
        region: Region,
        store: SecretStore,
    ) -> None:
        self.root = root
        self.config = config
        self.region = region
        self.reconciler = SecretReconciler(store, region.vault, config.vault_folders())

    def load(self, service: str, version: str | None = None) -> Manifest:
        """Load and merge one service, applying a version override."""
        manifest = load_manifest(self.root, service, self.config, self.region.name)
        if version is not None:
            manifest.set_version(version)
        return manifest

    def complete(self, manifest: Manifest) -> Manifest:
        """Reconcile secrets, then validate.

        Raises:
            ManifestError: If the manifest is invalid or its secrets are ambiguous
            VaultError: If a secret cannot be read
        """
        self.reconciler.resolve(manifest, template_context(manifest, self.region))
        verify(manifest, self.config, self.region)
        return manifest

    def prepare(
        self, services: Sequence[str], version: str | None = None
    ) -> PreparedRollout:
        prepared = PreparedRollout()
        for service in services:
            try:
                manifest = self.load(service, version)
                if manifest.disabled or manifest.external:
                    reason = "disabled" if manifest.disabled else "external service"
                    prepared.skipped.append(
                        RolloutOutcome.skipped(service, self.region.name, reason)
                    )
                    continue
                self.complete(manifest)
            except ManifestFailure as e:
                logger.error(f"bug: {e.message} ({service})")
                prepared.skipped.append(
                    RolloutOutcome.skipped(service, self.region.name, e.message)
                )
                continue
            except (ManifestError, VaultError) as e:
                logger.error(f"Skipping {service}: {e}")
                prepared.skipped.append(
                    RolloutOutcome.skipped(service, self.region.name, str(e))
                )
                continue
            prepared.manifests.append(manifest)
        return prepared

    def rollout(
        self,
        orchestrator: RolloutOrchestrator,
        services: Sequence[str],
        mode: UpgradeMode,
        max_parallel: int,
        *,
        version: str | None = None,
        ordered: bool = False,
    ) -> RolloutReport:
        """Prepare and roll out services.

        With ``ordered`` the services are dispatched one dependency layer at a
        time; a cycle aborts the run before anything is dispatched.

        Raises:
            DependencyCycleError: If ``ordered`` and the dependencies form a cycle
        """
        prepared = self.prepare(services, version)
        if not ordered:
            return orchestrator.run(
                prepared.manifests,
                mode,
                max_parallel,
                region=self.region.name,
                skipped=prepared.skipped,
            )

        by_name = {m.name: m for m in prepared.manifests}
        batches = build(prepared.manifests).batches()
        report = RolloutReport(
            region=self.region.name, mode=mode.value, outcomes=list(prepared.skipped)
        )
        for index, batch in enumerate(batches, start=1):
            logger.info(f"Rolling out batch {index}/{len(batches)}: {', '.join(batch)}")
            report.extend(
                orchestrator.run(
                    [by_name[name] for name in batch],
                    mode,
                    max_parallel,
                    region=self.region.name,
                )
            )
        return report
