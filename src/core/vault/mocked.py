"""Secret store returning dummy data."""

from __future__ import annotations

from loguru import logger

from .base import SecretStore, StoreMode

# base64 of "hello world", valid both as a plain secret and as a secret file
MOCKED_SECRET = "aGVsbG8gd29ybGQ="


class MockedSecretStore(SecretStore):
    """Returns the same value for every key and never touches the network."""

    def __init__(self, url: str = "") -> None:
        self.url = url

    @property
    def mode(self) -> StoreMode:
        return StoreMode.MOCKED

    def read(self, key: str) -> str:
        logger.debug(f"Mocked read of {key}")
        return MOCKED_SECRET

    def list(self, path: str) -> list[str]:
        return []
