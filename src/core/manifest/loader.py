"""Reading manifests from a manifest root.

Layout::

    <root>/services/<name>/manifest.yml     base manifest
    <root>/services/<name>/<region>.yml     optional region override
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from loguru import logger
from pydantic import ValidationError

from src.core.config import Config

from .errors import ManifestParseError
from .merge import Defaults, merge_manifest
from .models import Manifest, RawManifest

SERVICES_DIR = "services"
MANIFEST_FILENAME = "manifest.yml"


def service_dir(root: Path, service: str) -> Path:
    return root / SERVICES_DIR / service


def available_services(root: Path) -> list[str]:
    """Names of every service with a base manifest, sorted."""
    services_root = root / SERVICES_DIR
    if not services_root.is_dir():
        return []
    return sorted(
        path.name
        for path in services_root.iterdir()
        if (path / MANIFEST_FILENAME).is_file()
    )


def _read_document(path: Path, service: str) -> RawManifest:
    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ManifestParseError(f"{service}: error parsing {path}: {e}", service=service) from e
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ManifestParseError(f"{service}: {path} is not a mapping", service=service)
    try:
        return RawManifest.model_validate(data)
    except ValidationError as e:
        raise ManifestParseError(f"{service}: invalid manifest {path}: {e}", service=service) from e


def load_raw_manifest(root: Path, service: str) -> RawManifest:
    """Load the base manifest of a service.

    Raises:
        ManifestParseError: If the file is missing, malformed or has unknown keys
    """
    path = service_dir(root, service) / MANIFEST_FILENAME
    if not path.is_file():
        raise ManifestParseError(f"{service}: no manifest at {path}", service=service)
    logger.debug(f"Loading {path}")
    return _read_document(path, service)


def load_region_override(root: Path, service: str, region: str) -> RawManifest | None:
    """Load the region override of a service, if there is one."""
    path = service_dir(root, service) / f"{region}.yml"
    if not path.is_file():
        return None
    logger.debug(f"Loading region override {path}")
    return _read_document(path, service)


def load_manifest(root: Path, service: str, config: Config, region: str) -> Manifest:
    """Load and merge a service for a region.

    Raises:
        ConfigError: If the region is unknown
        ManifestParseError: If a manifest document is invalid
        ManifestValidationError: If the documents cannot be merged
        ManifestFailure: If the merge left a guaranteed field empty
    """
    region_config = config.get_region(region)
    base = load_raw_manifest(root, service)
    if base.name is None:
        base = base.model_copy(update={"name": service})
    override = load_region_override(root, service, region)
    return merge_manifest(base, override, Defaults.for_region(config, region_config))
