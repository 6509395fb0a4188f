"""Shared fixtures: a small config, a valid base manifest and a manifest root."""

from __future__ import annotations

import copy
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import yaml

from src.core.config import Config, Region
from src.core.manifest import Defaults, Manifest, RawManifest, merge_manifest

CONFIG_DATA: dict[str, Any] = {
    "defaults": {
        "image_prefix": "registry.example.com",
        "chart": "base",
        "replica_count": 2,
        "env": {"LOG_LEVEL": "info"},
    },
    "regions": [
        {
            "name": "dev-uk",
            "namespace": "dev",
            "environment": "dev",
            "cluster": "kube-dev",
            "versioning_scheme": "GitShaOrSemver",
            "vault": {"url": "https://vault.example.com", "folder": "dev-uk"},
            "base_urls": {"api": "https://api.dev.example.com"},
            "env": {"REGION_ONLY": "yes"},
        },
        {
            "name": "prod-uk",
            "namespace": "apps",
            "environment": "prod",
            "vault": {"url": "https://vault.example.com", "folder": "prod-uk"},
            "base_urls": {"api": "https://api.example.com"},
        },
    ],
    "teams": [
        {"name": "payments", "owners": ["ann"]},
        {"name": "platform"},
    ],
}

BASE_MANIFEST: dict[str, Any] = {
    "name": "payments",
    "regions": ["dev-uk", "prod-uk"],
    "metadata": {
        "team": "payments",
        "repo": "https://github.com/example/payments",
        "contacts": [{"name": "Ann", "slack": "@ann"}],
    },
    "version": "1.2.3",
    "resources": {
        "requests": {"cpu": "100m", "memory": "128Mi"},
        "limits": {"cpu": "500m", "memory": "512Mi"},
    },
    "httpPort": 8000,
    "health": {"uri": "/health", "wait": 20},
    "env": {
        "DB_PASSWORD": "IN_VAULT",
        "API_URL": "{{ base_urls.api }}/v1",
        "SERVICE_NAME": "payments",
    },
    "dependencies": [{"name": "ledger", "api": "v1"}],
}


@pytest.fixture
def config_data() -> dict[str, Any]:
    """A fresh copy of the raw shipyard.yml document."""
    return copy.deepcopy(CONFIG_DATA)


@pytest.fixture
def config(config_data: dict[str, Any]) -> Config:
    return Config.model_validate(config_data)


@pytest.fixture
def region(config: Config) -> Region:
    return config.get_region("dev-uk")


@pytest.fixture
def defaults(config: Config, region: Region) -> Defaults:
    return Defaults.for_region(config, region)


@pytest.fixture
def base_data() -> dict[str, Any]:
    """A fresh, valid base manifest document."""
    return copy.deepcopy(BASE_MANIFEST)


@pytest.fixture
def make_manifest(defaults: Defaults) -> Callable[..., Manifest]:
    """Build a merged manifest from a base document plus top-level overrides."""

    def _make(
        overrides: dict[str, Any] | None = None,
        remove: tuple[str, ...] = (),
    ) -> Manifest:
        data = copy.deepcopy(BASE_MANIFEST)
        data.update(overrides or {})
        for key in remove:
            data.pop(key, None)
        return merge_manifest(RawManifest.model_validate(data), None, defaults)

    return _make


@pytest.fixture
def manifest_root(tmp_path: Path) -> Path:
    """A manifest root with a config and two services."""
    (tmp_path / "shipyard.yml").write_text(yaml.safe_dump(CONFIG_DATA))

    payments = tmp_path / "services" / "payments"
    payments.mkdir(parents=True)
    (payments / "manifest.yml").write_text(yaml.safe_dump(BASE_MANIFEST))
    (payments / "prod-uk.yml").write_text(
        yaml.safe_dump({"replicaCount": 4, "env": {"LOG_LEVEL": "warn"}})
    )

    ledger = tmp_path / "services" / "ledger"
    ledger.mkdir(parents=True)
    ledger_manifest = copy.deepcopy(BASE_MANIFEST)
    ledger_manifest.update(
        {"name": "ledger", "dependencies": [], "env": {"SERVICE_NAME": "ledger"}}
    )
    (ledger / "manifest.yml").write_text(yaml.safe_dump(ledger_manifest))
    return tmp_path
