"""Deployment of completed manifests to Kubernetes.

The package is organized into subpackages for modularity:
- shell_commands: Abstractions for helm and kubectl execution
- rollout: Parallel rollout orchestration, executors and notification
"""

from .rollout import RolloutError, RolloutOrchestrator, RolloutPipeline, UpgradeMode

__all__ = ["RolloutError", "RolloutOrchestrator", "RolloutPipeline", "UpgradeMode"]
