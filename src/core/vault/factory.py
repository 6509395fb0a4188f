"""Secret store construction.

Bootstrap errors (``MissingAddr``/``MissingToken``) are raised here, before any
request is made.
"""

from __future__ import annotations

import os
from pathlib import Path

from loguru import logger

from src.core.config import VaultConfig

from .base import SecretStore
from .errors import MissingAddr, MissingToken
from .http import HttpSecretStore
from .mocked import MockedSecretStore

TOKEN_FILE = ".vault-token"


def default_token(allow_file: bool = True) -> str:
    """Resolve the token from ``VAULT_TOKEN`` or ``~/.vault-token``."""
    token = os.getenv("VAULT_TOKEN")
    if token:
        return token
    if allow_file:
        token_file = Path.home() / TOKEN_FILE
        if token_file.is_file():
            logger.debug(f"Using token from {token_file}")
            token = token_file.read_text(encoding="utf-8").strip()
            if token:
                return token
    raise MissingToken()


def from_env(allow_file: bool = True) -> SecretStore:
    """Live store using ``VAULT_ADDR`` and the default token."""
    addr = os.getenv("VAULT_ADDR")
    if not addr:
        raise MissingAddr()
    return HttpSecretStore(addr, default_token(allow_file))


def regional(vault_config: VaultConfig, allow_file: bool = True) -> SecretStore:
    """Live store at the region's configured url."""
    return HttpSecretStore(vault_config.url, default_token(allow_file))


def mocked(vault_config: VaultConfig | None = None) -> SecretStore:
    """Store returning dummy data, for validation without credentials."""
    return MockedSecretStore(vault_config.url if vault_config else "")
