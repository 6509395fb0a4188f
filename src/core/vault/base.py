"""Secret store interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum


class StoreMode(Enum):
    STANDARD = "standard"
    MOCKED = "mocked"


class SecretStore(ABC):
    """Read-only access to a key-value secret store.

    Implementations hold no mutable state after construction and can be
    shared between threads.
    """

    @property
    @abstractmethod
    def mode(self) -> StoreMode:
        """Whether values are real or dummy data."""

    @abstractmethod
    def read(self, key: str) -> str:
        """Read the value of the secret at ``key`` (``<folder>/<service>/<name>``).

        Raises:
            VaultError: If the secret cannot be read
        """

    @abstractmethod
    def list(self, path: str) -> list[str]:
        """List the secret names directly under ``path`` (sub folders excluded).

        Raises:
            VaultError: If the folder cannot be listed
        """
