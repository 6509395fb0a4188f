"""Secret store client speaking the Vault HTTP API."""

from __future__ import annotations

from typing import Any

import requests
from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from .base import SecretStore, StoreMode
from .errors import InvalidSecretForm, SecretNotAccessible, UnexpectedHttpStatus

TOKEN_HEADER = "X-Vault-Token"
DEFAULT_TIMEOUT = 10


class SecretResponse(BaseModel):
    """Body of ``GET v1/secret/<path>``."""

    data: dict[str, Any]
    lease_duration: int = 0


class ListResponse(BaseModel):
    """Body of ``GET v1/secret/<path>?list=true``."""

    data: dict[str, list[str]] = Field(default_factory=dict)


class HttpSecretStore(SecretStore):
    """Live secret store client.

    Every request carries the token in the ``X-Vault-Token`` header. Failures
    are surfaced with the offending url and never retried.
    """

    def __init__(
        self,
        addr: str,
        token: str,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.addr = addr.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers[TOKEN_HEADER] = token.strip()

    @property
    def mode(self) -> StoreMode:
        return StoreMode.STANDARD

    def _get(self, url: str, path: str, params: dict[str, str] | None = None) -> Any:
        logger.debug(f"GET {url}")
        try:
            response = self._session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise SecretNotAccessible(path, f"could not access url '{url}': {e}") from e

        if not response.ok:
            raise UnexpectedHttpStatus(response.status_code, url)
        try:
            return response.json()
        except ValueError as e:
            raise SecretNotAccessible(path, f"invalid json from {url}") from e

    def read(self, key: str) -> str:
        path = f"secret/{key}"
        url = f"{self.addr}/v1/{path}"
        body = self._get(url, path)
        try:
            secret = SecretResponse.model_validate(body)
        except ValidationError as e:
            raise InvalidSecretForm(path) from e

        value = secret.data.get("value")
        # integers are coerced, anything else is malformed
        if isinstance(value, bool) or not isinstance(value, (str, int)):
            raise InvalidSecretForm(path)
        return str(value)

    def list(self, path: str) -> list[str]:
        folder = f"secret/{path}"
        url = f"{self.addr}/v1/{folder}"
        body = self._get(url, folder, params={"list": "true"})
        try:
            listing = ListResponse.model_validate(body)
        except ValidationError as e:
            raise SecretNotAccessible(folder, f"malformed listing from {url}") from e
        if "keys" not in listing.data:
            raise SecretNotAccessible(folder, f"listing from {url} has no keys")
        return [key for key in listing.data["keys"] if not key.endswith("/")]
