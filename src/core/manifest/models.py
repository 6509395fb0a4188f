"""Manifest models.

``RawManifest`` is what a user writes (a base manifest or a region override).
``Manifest`` is the merged, per-region result; it adds the fields the pipeline
owns (``region``, ``environment``, ``namespace``, ``secrets``, ``kind``), which
are therefore rejected when they appear in user input.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import Field

from .env import VAULT_SENTINEL, EnvVars
from .structs import (
    AutoScaling,
    ConfigMap,
    CronJob,
    Dependency,
    ElastiCache,
    Gate,
    HealthCheck,
    HostAlias,
    InitContainer,
    Kafka,
    Kong,
    LifeCycle,
    ManifestModel,
    Metadata,
    PersistentVolume,
    Port,
    Probe,
    Rbac,
    Rds,
    Resources,
    RollingUpdate,
    Sidecar,
    Tolerations,
    VaultOpts,
    Volume,
    VolumeMount,
    Worker,
)

REDACTED = "<redacted>"


class ManifestKind(str, Enum):
    """How far a manifest has travelled through the pipeline."""

    BASE = "Base"
    MERGED = "Merged"
    COMPLETED = "Completed"


class RawManifest(ManifestModel):
    """A manifest document as written by a service owner."""

    # identity
    name: str | None = None
    regions: list[str] = Field(default_factory=list)
    metadata: Metadata | None = None
    external: bool = False
    disabled: bool = False
    publicly_accessible: bool = False

    # runtime
    image: str | None = None
    image_size: int | None = None
    version: str | None = None
    command: list[str] = Field(default_factory=list)
    resources: Resources | None = None
    replica_count: int | None = None
    chart: str | None = None

    # networking
    ports: list[Port] = Field(default_factory=list)
    http_port: int | None = None
    external_port: int | None = None
    hosts: list[str] = Field(default_factory=list)
    source_ranges: list[str] = Field(default_factory=list)
    service_annotations: dict[str, str] = Field(default_factory=dict)
    labels: dict[str, str] = Field(default_factory=dict)

    # health
    health: HealthCheck | None = None
    readiness_probe: Probe | None = None
    liveness_probe: Probe | None = None
    lifecycle: LifeCycle | None = None

    # scaling
    auto_scaling: AutoScaling | None = None
    rolling_update: RollingUpdate | None = None

    # auxiliary workloads
    sidecars: list[Sidecar] = Field(default_factory=list)
    workers: list[Worker] = Field(default_factory=list)
    cron_jobs: list[CronJob] = Field(default_factory=list)
    init_containers: list[InitContainer] = Field(default_factory=list)

    # storage
    volumes: list[Volume] = Field(default_factory=list)
    volume_mounts: list[VolumeMount] = Field(default_factory=list)
    persistent_volumes: list[PersistentVolume] = Field(default_factory=list)
    configs: ConfigMap | None = None

    # environment
    env: EnvVars = Field(default_factory=EnvVars)
    secret_files: dict[str, str] = Field(default_factory=dict)
    vault: VaultOpts | None = None

    # gateway
    kong: Kong | None = None
    gate: Gate | None = None
    kafka: Kafka | None = None

    # managed resources
    database: Rds | None = None
    redis: ElastiCache | None = None

    # access
    rbac: list[Rbac] = Field(default_factory=list)
    tolerations: list[Tolerations] = Field(default_factory=list)
    host_aliases: list[HostAlias] = Field(default_factory=list)

    dependencies: list[Dependency] = Field(default_factory=list)


class Manifest(RawManifest):
    """A service manifest resolved for one region."""

    name: str
    region: str = ""
    environment: str = ""
    namespace: str = ""
    secrets: dict[str, str] = Field(default_factory=dict)
    kind: ManifestKind = ManifestKind.BASE

    def set_version(self, version: str) -> None:
        """Override the version, e.g. from the command line."""
        self.version = version

    def get_env_vars(self) -> list[tuple[str, EnvVars]]:
        """Every environment container in the manifest, labelled.

        Order: main container, sidecars, workers, cron jobs.
        """
        containers: list[tuple[str, EnvVars]] = [("main", self.env)]
        containers += [(f"sidecar {s.name}", s.env) for s in self.sidecars]
        containers += [(f"worker {w.name}", w.env) for w in self.workers]
        containers += [(f"cronJob {c.name}", c.env) for c in self.cron_jobs]
        return containers

    def get_secrets(self) -> list[str]:
        """Raw secret values, for obfuscating output."""
        values = [v for v in self.secrets.values() if v]
        values += [
            v for v in self.secret_files.values() if v and v != VAULT_SENTINEL
        ]
        return values

    def redacted(self) -> dict[str, Any]:
        """Dump the manifest with every secret value replaced."""
        data = self.model_dump(by_alias=True, exclude_none=True, mode="json")
        data["secrets"] = {key: REDACTED for key in self.secrets}
        data["secretFiles"] = {key: REDACTED for key in self.secret_files}
        return data
