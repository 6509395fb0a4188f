"""Secret store access.

Two implementations share the ``SecretStore`` interface:

- HttpSecretStore: live reads and listings over the Vault HTTP API
- MockedSecretStore: a fixed dummy value for every key

Use the factory functions to build one; they fail on missing credentials
before any request is made.
"""

from .base import SecretStore, StoreMode
from .errors import (
    InvalidSecretForm,
    MissingAddr,
    MissingToken,
    SecretNotAccessible,
    UnexpectedHttpStatus,
    VaultError,
)
from .factory import default_token, from_env, mocked, regional
from .http import HttpSecretStore
from .mocked import MOCKED_SECRET, MockedSecretStore

__all__ = [
    "MOCKED_SECRET",
    "HttpSecretStore",
    "InvalidSecretForm",
    "MissingAddr",
    "MissingToken",
    "MockedSecretStore",
    "SecretNotAccessible",
    "SecretStore",
    "StoreMode",
    "UnexpectedHttpStatus",
    "VaultError",
    "default_token",
    "from_env",
    "mocked",
    "regional",
]
