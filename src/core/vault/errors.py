"""Secret store errors."""

from __future__ import annotations


class VaultError(Exception):
    """Base class for secret store errors."""


class MissingAddr(VaultError):
    def __init__(self) -> None:
        super().__init__("VAULT_ADDR not specified")


class MissingToken(VaultError):
    def __init__(self) -> None:
        super().__init__("VAULT_TOKEN not specified and no ~/.vault-token file found")


class InvalidSecretForm(VaultError):
    """The secret exists but has no ``value`` key."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"secret '{path}' does not have the 'value' key")


class SecretNotAccessible(VaultError):
    """The secret store could not be reached for a path."""

    def __init__(self, path: str, reason: str = "") -> None:
        self.path = path
        message = f"secret '{path}' could not be reached or accessed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class UnexpectedHttpStatus(VaultError):
    """The secret store answered with a non-2xx status."""

    def __init__(self, status: int, url: str) -> None:
        self.status = status
        self.url = url
        super().__init__(f"Unexpected HTTP status {status} from {url}")
