"""Rollout runtime errors."""

from __future__ import annotations


class RolloutError(Exception):
    """Raised when a rollout operation fails."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


class MissingRollingVersion(RolloutError):
    """The manifest has no version and nothing is installed to fall back on."""

    def __init__(self, service: str) -> None:
        self.service = service
        super().__init__(
            f"{service} has no version in manifest and is not installed yet"
        )


class HelmUpgradeFailure(RolloutError):
    """helm exited non-zero."""

    def __init__(self, service: str, details: str | None = None) -> None:
        self.service = service
        super().__init__(f"Helm upgrade of '{service}' failed", details)


class UpgradeTimeout(RolloutError):
    """The rollout did not finish within its wait budget.

    The rollout itself keeps going in the cluster.
    """

    def __init__(self, service: str, seconds: int) -> None:
        self.service = service
        self.seconds = seconds
        super().__init__(f"{service} upgrade timed out waiting {seconds}s for rollout")
