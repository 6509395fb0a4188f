"""Rollout constants.

Centralizes the tunables of the rollout orchestrator so they are easy to
find, update, and override in tests.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RolloutConstants:
    """Constants for Helm rollouts."""

    # Polling
    POLL_INTERVAL_SECONDS: float = 5.0

    # Concurrency
    DEFAULT_PARALLELISM: int = 4

    # Helm's own operation timeout (the wait budget is enforced separately)
    HELM_TIMEOUT: str = "10m"
    ROLLBACK_TIMEOUT: str = "5m"

    # Wait budget heuristic
    WAIT_MULTIPLIER: float = 1.5
    MIN_PULL_SECONDS: int = 60
    PULL_SECONDS_PER_512MB: int = 90
    DEFAULT_HEALTH_DELAY_SECONDS: int = 30

    # Directory (under the manifest root) holding charts
    CHARTS_DIR: str = "charts"
