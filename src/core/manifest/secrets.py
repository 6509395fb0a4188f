"""Secret reconciliation.

Fills a merged manifest's ``secrets`` map from its environment declarations:
vault-sourced keys are read from the secret store, ``as_secret`` templates are
rendered, and secret files marked ``IN_VAULT`` are replaced with their store
value. The map is rebuilt on every call.
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Mapping
from typing import Any

from loguru import logger

from src.core.config import Region, VaultConfig
from src.core.vault import SecretStore

from .env import VAULT_SENTINEL
from .errors import SecretReconciliationError
from .models import Manifest, ManifestKind


def template_context(manifest: Manifest, region: Region) -> dict[str, Any]:
    """Values available to env templates."""
    return {
        "service": manifest.name,
        "region": region.name,
        "environment": region.environment,
        "namespace": region.namespace,
        "base_urls": dict(region.base_urls),
        "version": manifest.version,
    }


def vault_path(
    manifest: Manifest,
    vault_config: VaultConfig,
    folders: Mapping[str, str] | None = None,
) -> str:
    """Secret store folder of a service: ``<region folder>/<service>``.

    A ``vault`` block in the manifest can borrow another service's secrets
    (``name``) or another region's folder (``region``).
    """
    folder = vault_config.folder
    name = manifest.name
    if manifest.vault is not None:
        name = manifest.vault.name
        if manifest.vault.region:
            if not folders or manifest.vault.region not in folders:
                raise SecretReconciliationError(
                    f"{manifest.name}: vault region '{manifest.vault.region}' is not configured",
                    service=manifest.name,
                )
            folder = folders[manifest.vault.region]
    return f"{folder}/{name}"


class SecretReconciler:
    """Resolve manifest secrets against one secret store."""

    def __init__(
        self,
        store: SecretStore,
        vault_config: VaultConfig,
        folders: Mapping[str, str] | None = None,
    ) -> None:
        self.store = store
        self.vault_config = vault_config
        self.folders = folders

    def _fail(self, manifest: Manifest, reason: str) -> SecretReconciliationError:
        return SecretReconciliationError(f"{manifest.name}: {reason}", service=manifest.name)

    def _collect(
        self, manifest: Manifest, context: Mapping[str, Any]
    ) -> tuple[list[str], dict[str, str]]:
        vault_keys: list[str] = []
        template_secrets: dict[str, str] = {}
        origin: dict[str, str] = {}

        for label, env in manifest.get_env_vars():
            try:
                env.render_templates(context)
                rendered = env.template_secrets()
            except ValueError as e:
                raise self._fail(manifest, f"{label}: {e}") from e

            for key in env.vault_secrets():
                if key not in vault_keys:
                    vault_keys.append(key)
            for key, value in rendered.items():
                if key in template_secrets and template_secrets[key] != value:
                    raise self._fail(
                        manifest,
                        f"secret {key} is templated differently in {origin[key]} and {label}",
                    )
                template_secrets[key] = value
                origin.setdefault(key, label)

        return vault_keys, template_secrets

    def resolve(self, manifest: Manifest, context: Mapping[str, Any] | None = None) -> None:
        """Populate ``manifest.secrets`` and resolve its secret files.

        Args:
            manifest: Merged manifest, mutated in place
            context: Template context (see ``template_context``)

        Raises:
            SecretReconciliationError: On ambiguous sourcing or invalid secret files
            VaultError: If the store cannot be read
        """
        path = vault_path(manifest, self.vault_config, self.folders)
        vault_keys, template_secrets = self._collect(manifest, context or {})
        logger.debug(
            f"{manifest.name}: {len(vault_keys)} vault secrets, "
            f"{len(template_secrets)} templated secrets under {path}"
        )

        secrets: dict[str, str] = {}
        for key in vault_keys:
            secrets[key] = self.store.read(f"{path}/{key}")

        for key, value in template_secrets.items():
            if key in secrets and secrets[key] != value:
                raise self._fail(
                    manifest,
                    f"secret {key} is both in vault and templated, with different values",
                )
            secrets[key] = value

        secret_files: dict[str, str] = {}
        for key, value in manifest.secret_files.items():
            if value == VAULT_SENTINEL:
                value = self.store.read(f"{path}/{key}")
            try:
                base64.b64decode(value, validate=True)
            except (binascii.Error, ValueError) as e:
                raise self._fail(manifest, f"secret file {key} is not valid base64") from e
            secret_files[key] = value

        manifest.secret_files = secret_files
        manifest.secrets = secrets
        manifest.kind = ManifestKind.COMPLETED

    def verify_exist(self, manifest: Manifest) -> None:
        """Check every declared vault key is listed in the service folder.

        Raises:
            SecretReconciliationError: Naming the missing keys
            VaultError: If the folder cannot be listed
        """
        path = vault_path(manifest, self.vault_config, self.folders)
        declared: list[str] = []
        for _, env in manifest.get_env_vars():
            declared += [k for k in env.vault_secrets() if k not in declared]
        declared += [
            k for k, v in manifest.secret_files.items() if v == VAULT_SENTINEL
        ]
        if not declared:
            return

        available = set(self.store.list(path))
        missing = [key for key in declared if key not in available]
        if missing:
            raise self._fail(
                manifest, f"secrets missing from {path}: {', '.join(missing)}"
            )
        logger.info(f"{manifest.name}: all {len(declared)} secrets present in {path}")


def resolve_secrets(
    manifest: Manifest,
    store: SecretStore,
    vault_config: VaultConfig,
    context: Mapping[str, Any] | None = None,
    folders: Mapping[str, str] | None = None,
) -> None:
    SecretReconciler(store, vault_config, folders).resolve(manifest, context)


def verify_secrets_exist(
    manifest: Manifest,
    store: SecretStore,
    vault_config: VaultConfig,
    folders: Mapping[str, str] | None = None,
) -> None:
    SecretReconciler(store, vault_config, folders).verify_exist(manifest)
