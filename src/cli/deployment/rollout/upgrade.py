"""Upgrade modes, per-attempt upgrade data and wait budget estimation."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum

from src.core.manifest import Manifest
from src.core.manifest.structs import RollingUpdate

from .constants import RolloutConstants
from .report import RolloutOutcome


class UpgradeMode(str, Enum):
    """Requested rollout action."""

    INSTALL = "install"
    UPGRADE = "upgrade"
    UPGRADE_WAIT = "upgrade-wait"
    UPGRADE_WAIT_ROLLBACK = "upgrade-wait-rollback"
    DIFF = "diff"
    ROLLBACK = "rollback"

    @property
    def requires_version(self) -> bool:
        """Whether the mode needs a concrete version to render the chart."""
        return self is not UpgradeMode.ROLLBACK

    @property
    def waits(self) -> bool:
        """Whether the orchestrator polls the rollout after dispatching."""
        return self in (
            UpgradeMode.INSTALL,
            UpgradeMode.UPGRADE_WAIT,
            UpgradeMode.UPGRADE_WAIT_ROLLBACK,
        )

    @property
    def rolls_back(self) -> bool:
        return self is UpgradeMode.UPGRADE_WAIT_ROLLBACK

    @property
    def mutates(self) -> bool:
        return self is not UpgradeMode.DIFF


@dataclass
class UpgradeData:
    """One rollout attempt of one service.

    Attributes:
        manifest: Completed manifest to roll out
        mode: Requested action
        version: Version dispatched (declared or inferred)
        wait_seconds: Budget for the rollout to complete
        outcome: Filled in once the attempt reaches a terminal state
    """

    manifest: Manifest
    mode: UpgradeMode
    version: str | None
    wait_seconds: int
    outcome: RolloutOutcome | None = field(default=None)

    @property
    def name(self) -> str:
        return self.manifest.name


class WaitTimeEstimator:
    """Heuristic upper bound on how long a rollout may take.

    budget = iterations * (pull + delay) * multiplier, where

    - pull: image pull time, scaled from image size (MB) with a floor
    - delay: health check wait, else readiness initial delay, else a default
    - iterations: rolling update batches needed to replace every replica

    A wrong estimate only affects how early a timeout is reported.
    """

    def __init__(self, constants: RolloutConstants | None = None) -> None:
        self.constants = constants or RolloutConstants()

    def pull_seconds(self, manifest: Manifest) -> float:
        size = manifest.image_size or 0
        scaled = size * self.constants.PULL_SECONDS_PER_512MB / 512
        return max(float(self.constants.MIN_PULL_SECONDS), scaled)

    def delay_seconds(self, manifest: Manifest) -> float:
        if manifest.health is not None:
            return float(manifest.health.wait)
        if manifest.readiness_probe is not None:
            return float(manifest.readiness_probe.initial_delay_seconds)
        return float(self.constants.DEFAULT_HEALTH_DELAY_SECONDS)

    def iterations(self, manifest: Manifest) -> int:
        replicas = max(manifest.replica_count or 1, 1)
        rolling_update = manifest.rolling_update or RollingUpdate()
        return max(rolling_update.rollout_iterations(replicas), 1)

    def estimate(self, manifest: Manifest) -> int:
        per_iteration = self.pull_seconds(manifest) + self.delay_seconds(manifest)
        budget = self.iterations(manifest) * per_iteration * self.constants.WAIT_MULTIPLIER
        return math.ceil(budget)
