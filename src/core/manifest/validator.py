"""Ordered manifest validation.

Checks run in a fixed order and stop at the first failure. User errors raise
``ManifestValidationError`` naming the service; missing fields the merge
guarantees raise ``ManifestFailure``.
"""

from __future__ import annotations

from collections.abc import Iterable

from loguru import logger

from src.core.config import Config, Region

from .errors import ManifestFailure, ManifestValidationError
from .models import Manifest
from .structs import Validatable, verify_name


def _fail(manifest: Manifest, reason: str) -> ManifestValidationError:
    return ManifestValidationError(f"{manifest.name}: {reason}", service=manifest.name)


def _check(manifest: Manifest, what: str, items: Iterable[Validatable]) -> None:
    for item in items:
        try:
            item.verify()
        except ValueError as e:
            raise _fail(manifest, f"invalid {what}: {e}") from e


def verify(manifest: Manifest, config: Config, region: Region) -> None:
    """Validate a merged (and ideally reconciled) manifest for a region.

    Args:
        manifest: Manifest to check
        config: Shipyard config (teams)
        region: Region the manifest is resolved for

    Raises:
        ManifestValidationError: On the first user facing violation
        ManifestFailure: If a field the merge guarantees is missing
    """
    name = manifest.name

    # identity checks apply even to external services
    if region.name not in manifest.regions:
        raise _fail(manifest, f"region {region.name} is not in regions {manifest.regions}")
    try:
        verify_name(name, "Service")
    except ValueError as e:
        raise _fail(manifest, str(e)) from e

    if manifest.external:
        logger.debug(f"Skipping validation of external service {name}")
        return

    if manifest.metadata is None:
        raise _fail(manifest, "metadata with a team is required")
    try:
        manifest.metadata.verify(config.team_names())
    except ValueError as e:
        raise _fail(manifest, f"invalid metadata: {e}") from e

    if manifest.version is not None:
        try:
            region.versioning_scheme.verify(manifest.version)
        except ValueError as e:
            raise _fail(manifest, str(e)) from e

    if manifest.gate is not None:
        if manifest.kong is None:
            raise _fail(manifest, "gate configuration requires a kong configuration")
        if manifest.gate.public != manifest.publicly_accessible:
            raise _fail(
                manifest, "gate.public must agree with publiclyAccessible"
            )

    if manifest.resources is None:
        raise _fail(manifest, "resources are required")
    _check(manifest, "resources", [manifest.resources])

    _check(manifest, "dependency", manifest.dependencies)
    _check(manifest, "host alias", manifest.host_aliases)
    _check(manifest, "toleration", manifest.tolerations)
    _check(manifest, "init container", manifest.init_containers)
    _check(manifest, "worker", manifest.workers)
    _check(manifest, "sidecar", manifest.sidecars)
    _check(manifest, "cron job", manifest.cron_jobs)
    _check(manifest, "port", manifest.ports)
    _check(manifest, "rbac rule", manifest.rbac)
    _check(manifest, "persistent volume", manifest.persistent_volumes)
    if manifest.configs is not None:
        _check(manifest, "configs", [manifest.configs])
    probes = [p for p in (manifest.health, manifest.readiness_probe, manifest.liveness_probe) if p]
    _check(manifest, "health check", probes)
    if manifest.auto_scaling is not None:
        _check(manifest, "autoScaling", [manifest.auto_scaling])
    _check(manifest, "env", [manifest.env])

    replicas = manifest.replica_count
    if replicas is None:
        raise ManifestFailure("replicaCount", service=name)
    if replicas < 1:
        raise _fail(manifest, f"replicaCount must be at least 1, got {replicas}")
    if manifest.rolling_update is not None:
        try:
            manifest.rolling_update.verify(replicas)
        except ValueError as e:
            raise _fail(manifest, f"invalid rollingUpdate: {e}") from e

    for key in ("image", "image_size", "chart", "namespace", "regions", "environment"):
        if not getattr(manifest, key):
            raise ManifestFailure(key, service=name)

    has_health = manifest.health is not None or manifest.readiness_probe is not None
    if manifest.http_port is not None and not has_health:
        raise _fail(manifest, f"httpPort {manifest.http_port} requires a health check")
    if not has_health:
        logger.warning(f"{name} has no health check and will be marked ready immediately")
    if manifest.http_port is None:
        logger.warning(f"{name} exposes no httpPort")

    if manifest.database is not None:
        _check(manifest, "database", [manifest.database])
    if manifest.redis is not None:
        _check(manifest, "redis", [manifest.redis])

    logger.debug(f"Validated {name} for {region.name}")
