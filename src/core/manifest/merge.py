"""Layered manifest merge.

Precedence, highest first: region override, base manifest, defaults.

- maps merge by key (``env``, ``secretFiles``, ``labels``, ``serviceAnnotations``)
- named collections merge by ``name``, the override replacing an element with
  the same name and appending otherwise
- unkeyed collections append without duplicates
- everything else (including ``command`` and ``regions``) is a scalar
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from loguru import logger
from pydantic import BaseModel, ValidationError

from src.core.config import Config, Region

from .env import EnvVars
from .errors import ManifestFailure, ManifestValidationError
from .models import Manifest, ManifestKind, RawManifest

DEFAULT_IMAGE_SIZE = 512

MAP_FIELDS = frozenset({"env", "secret_files", "labels", "service_annotations"})
NAMED_FIELDS = frozenset(
    {
        "sidecars",
        "workers",
        "cron_jobs",
        "init_containers",
        "volumes",
        "volume_mounts",
        "persistent_volumes",
        "ports",
        "dependencies",
    }
)
UNKEYED_FIELDS = frozenset(
    {"tolerations", "host_aliases", "rbac", "hosts", "source_ranges"}
)
GUARANTEED_FIELDS = ("image", "chart", "namespace")


@dataclass(frozen=True)
class Defaults:
    """Everything a manifest inherits from config for one region."""

    region: str
    namespace: str
    environment: str
    image_prefix: str
    chart: str
    replica_count: int
    env: dict[str, str] = field(default_factory=dict)

    @classmethod
    def for_region(cls, config: Config, region: Region) -> Defaults:
        # region env wins over global default env
        env = {**config.defaults.env, **region.env}
        return cls(
            region=region.name,
            namespace=region.namespace,
            environment=region.environment,
            image_prefix=config.defaults.image_prefix,
            chart=config.defaults.chart,
            replica_count=config.defaults.replica_count,
            env=env,
        )


def _element_key(item: Any) -> str:
    name = getattr(item, "name", None)
    if name:
        return name
    if isinstance(item, BaseModel):
        return item.model_dump_json()
    return repr(item)


def _merge_named(base: list[Any], override: list[Any]) -> list[Any]:
    merged = {_element_key(item): item for item in base}
    for item in override:
        merged[_element_key(item)] = item
    return list(merged.values())


def _merge_unkeyed(base: list[Any], override: list[Any]) -> list[Any]:
    merged = list(base)
    for item in override:
        if item not in merged:
            merged.append(item)
    return merged


def _merge_maps(base: Any, override: Any) -> Any:
    if isinstance(base, EnvVars):
        return base.merged(override)
    return {**base, **override}


def merge_manifest(
    base: RawManifest, region_override: RawManifest | None, defaults: Defaults
) -> Manifest:
    """Merge a base manifest and its region override on top of defaults.

    The inputs are not mutated.

    Args:
        base: Base manifest of the service
        region_override: Region specific manifest, if the service has one
        defaults: Config defaults for the target region

    Returns:
        A manifest of kind ``Merged``

    Raises:
        ManifestValidationError: If the base has no name or the override renames it
        ManifestFailure: If a guaranteed field is still empty after the merge
    """
    override = region_override or RawManifest()
    if not base.name:
        raise ManifestValidationError("Base manifest has no name")
    service = base.name
    if override.name and override.name != service:
        raise ManifestValidationError(
            f"{service}: region override for {defaults.region} renames the "
            f"service to '{override.name}'",
            service=service,
        )

    base = base.model_copy(deep=True)
    override = override.model_copy(deep=True)

    merged: dict[str, Any] = {}
    for name in RawManifest.model_fields:
        base_value = getattr(base, name)
        override_value = getattr(override, name)
        if name in MAP_FIELDS:
            merged[name] = _merge_maps(base_value, override_value)
        elif name in NAMED_FIELDS:
            merged[name] = _merge_named(base_value, override_value)
        elif name in UNKEYED_FIELDS:
            merged[name] = _merge_unkeyed(base_value, override_value)
        elif name in override.model_fields_set:
            merged[name] = override_value
        else:
            merged[name] = base_value

    merged["env"] = EnvVars(defaults.env).merged(merged["env"])
    merged["image"] = merged["image"] or (
        f"{defaults.image_prefix}/{service}" if defaults.image_prefix else None
    )
    if merged["image_size"] is None:
        merged["image_size"] = DEFAULT_IMAGE_SIZE
    merged["chart"] = merged["chart"] or defaults.chart
    if merged["replica_count"] is None:
        merged["replica_count"] = defaults.replica_count

    try:
        manifest = Manifest.model_validate(
            {
                **merged,
                "region": defaults.region,
                "namespace": defaults.namespace,
                "environment": defaults.environment,
                "kind": ManifestKind.MERGED,
            }
        )
    except ValidationError as e:
        raise ManifestValidationError(f"{service}: {e}", service=service) from e

    for key in GUARANTEED_FIELDS:
        if not getattr(manifest, key):
            raise ManifestFailure(key, service=service)

    logger.debug(f"Merged manifest for {service} in {defaults.region}")
    return manifest
