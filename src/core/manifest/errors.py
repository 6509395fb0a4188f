"""Manifest error types.

Errors are split by who has to act on them:

- ManifestValidationError: the manifest (user input) is wrong
- SecretReconciliationError: secrets are declared ambiguously or are malformed
- ManifestFailure: a field the pipeline guarantees was not propagated (a bug)
- DependencyCycleError: the service dependency graph is not a DAG
"""

from __future__ import annotations


class ManifestError(Exception):
    """Base class for all manifest processing errors."""

    def __init__(self, message: str, service: str = "") -> None:
        self.message = message
        self.service = service
        super().__init__(message)


class ManifestParseError(ManifestError):
    """Raised when a manifest document cannot be parsed into the schema."""


class ManifestValidationError(ManifestError):
    """Raised when a resolved manifest violates a user-facing invariant."""


class ManifestFailure(ManifestError):
    """Raised when a pipeline-guaranteed key is missing.

    This is never the fault of the manifest author.
    """

    def __init__(self, key: str, service: str = "") -> None:
        self.key = key
        super().__init__(
            f"manifest key '{key}' was not propagated internally - bug!",
            service=service,
        )


class SecretReconciliationError(ManifestError):
    """Raised when secrets cannot be reconciled for a manifest."""


class DependencyCycleError(ManifestError):
    """Raised when service dependencies form a cycle."""

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = cycle
        super().__init__(
            "Dependency cycle detected: " + " -> ".join(cycle),
        )
