"""Parallel Helm rollout of completed manifests.

- pipeline: load, reconcile and validate services for a region
- orchestrator: bounded-parallel per-service state machines
- executor: the Helm/kubectl implementation of the executor contract
- notifier: per-service rollout events
"""

from .constants import RolloutConstants
from .errors import HelmUpgradeFailure, MissingRollingVersion, RolloutError, UpgradeTimeout
from .executor import HelmExecutor, RolloutExecutor
from .notifier import BackgroundNotifier, LoggingNotifier, Notifier, RolloutEvent
from .orchestrator import RolloutOrchestrator
from .pipeline import PreparedRollout, RolloutPipeline
from .report import RolloutOutcome, RolloutReport, RolloutState
from .upgrade import UpgradeData, UpgradeMode, WaitTimeEstimator

__all__ = [
    "BackgroundNotifier",
    "HelmExecutor",
    "HelmUpgradeFailure",
    "LoggingNotifier",
    "MissingRollingVersion",
    "Notifier",
    "PreparedRollout",
    "RolloutConstants",
    "RolloutError",
    "RolloutEvent",
    "RolloutExecutor",
    "RolloutOrchestrator",
    "RolloutOutcome",
    "RolloutPipeline",
    "RolloutReport",
    "RolloutState",
    "UpgradeData",
    "UpgradeMode",
    "UpgradeTimeout",
    "WaitTimeEstimator",
]
