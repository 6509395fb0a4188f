"""Manifest sub-structures.

Each structure that can be wrong on its own implements ``verify()`` and
raises ``ValueError`` with a readable reason. The validator calls them through
the ``Validatable`` protocol without knowing the concrete type.
"""

from __future__ import annotations

import ipaddress
import math
import re
from typing import Any, Literal, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .env import EnvVars

NAME_PATTERN = re.compile(r"^[0-9a-z-]{1,50}$")
HOSTNAME_PATTERN = re.compile(
    r"^(?=.{1,253}$)([a-zA-Z0-9]([-a-zA-Z0-9]{0,61}[a-zA-Z0-9])?)"
    r"(\.[a-zA-Z0-9]([-a-zA-Z0-9]{0,61}[a-zA-Z0-9])?)*$"
)
CRON_FIELD_PATTERN = re.compile(r"^[0-9*/,\-?LW#A-Za-z]+$")
PORT_NAME_PATTERN = re.compile(r"^[a-z0-9]([-a-z0-9]{0,13}[a-z0-9])?$")

_CPU_PATTERN = re.compile(r"^([0-9]*\.?[0-9]+)(m?)$")
_MEMORY_PATTERN = re.compile(r"^([0-9]*\.?[0-9]+)(Ki|Mi|Gi|Ti|Pi|Ei|k|M|G|T|P|E)?$")
_MEMORY_UNITS = {
    None: 1,
    "k": 10**3,
    "M": 10**6,
    "G": 10**9,
    "T": 10**12,
    "P": 10**15,
    "E": 10**18,
    "Ki": 2**10,
    "Mi": 2**20,
    "Gi": 2**30,
    "Ti": 2**40,
    "Pi": 2**50,
    "Ei": 2**60,
}


@runtime_checkable
class Validatable(Protocol):
    """Anything that can check its own invariants."""

    def verify(self) -> None: ...


class ManifestModel(BaseModel):
    """Base for all manifest schema models (camelCase keys, no unknown keys)."""

    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


def verify_name(name: str, what: str) -> None:
    """Check a kube-dns compatible name."""
    if not NAME_PATTERN.fullmatch(name):
        raise ValueError(
            f"{what} name '{name}' must be 1-50 lower case alphanumerics or dashes"
        )
    if name.startswith("-") or name.endswith("-"):
        raise ValueError(f"{what} name '{name}' must use dashes to separate words only")


# =============================================================================
# Quantities
# =============================================================================


def parse_cpu(value: str | int | float) -> float:
    """Parse a kubernetes CPU quantity into cores."""
    match = _CPU_PATTERN.match(str(value).strip())
    if not match:
        raise ValueError(f"Invalid cpu quantity '{value}'")
    number = float(match.group(1))
    return number / 1000 if match.group(2) else number


def parse_memory(value: str | int) -> int:
    """Parse a kubernetes memory quantity into bytes."""
    match = _MEMORY_PATTERN.match(str(value).strip())
    if not match:
        raise ValueError(f"Invalid memory quantity '{value}'")
    return int(float(match.group(1)) * _MEMORY_UNITS[match.group(2)])


class ResourceRequirements(ManifestModel):
    cpu: str | int | float
    memory: str | int


class Resources(ManifestModel):
    """Kubernetes resource requests and limits."""

    requests: ResourceRequirements
    limits: ResourceRequirements

    def verify(self) -> None:
        req_cpu = parse_cpu(self.requests.cpu)
        lim_cpu = parse_cpu(self.limits.cpu)
        req_mem = parse_memory(self.requests.memory)
        lim_mem = parse_memory(self.limits.memory)
        if req_cpu <= 0 or req_mem <= 0:
            raise ValueError("Resource requests must be positive")
        if req_cpu > lim_cpu:
            raise ValueError(
                f"Requested cpu {self.requests.cpu} exceeds the limit {self.limits.cpu}"
            )
        if req_mem > lim_mem:
            raise ValueError(
                f"Requested memory {self.requests.memory} exceeds the limit "
                f"{self.limits.memory}"
            )


# =============================================================================
# Health
# =============================================================================


class HealthCheck(ManifestModel):
    """Small abstraction around a readiness probe."""

    uri: str
    wait: int = 30

    def verify(self) -> None:
        if not self.uri.startswith("/"):
            raise ValueError(f"Health check uri '{self.uri}' must start with /")
        if self.wait < 0:
            raise ValueError("Health check wait must not be negative")


class Probe(ManifestModel):
    """Kubernetes liveness/readiness probe."""

    http_get: dict[str, Any] | None = None
    tcp_socket: dict[str, Any] | None = None
    exec_: dict[str, Any] | None = Field(default=None, alias="exec")
    initial_delay_seconds: int = 5
    period_seconds: int = 10
    timeout_seconds: int = 1
    success_threshold: int = 1
    failure_threshold: int = 3

    def verify(self) -> None:
        handlers = [h for h in (self.http_get, self.tcp_socket, self.exec_) if h]
        if len(handlers) != 1:
            raise ValueError("Probe needs exactly one of httpGet, tcpSocket or exec")


class LifeCycle(ManifestModel):
    post_start: dict[str, Any] | None = None
    pre_stop: dict[str, Any] | None = None


# =============================================================================
# Scaling
# =============================================================================


def _scaled(value: str | int, replicas: int, *, round_up: bool) -> int:
    if isinstance(value, int):
        return value
    text = value.strip()
    if text.endswith("%"):
        percent = float(text[:-1])
        if not 0 <= percent <= 100:
            raise ValueError(f"Percentage {value} must be between 0% and 100%")
        raw = replicas * percent / 100
        return math.ceil(raw) if round_up else math.floor(raw)
    return int(text)


class RollingUpdate(ManifestModel):
    """Rolling update parameters of the main Deployment."""

    max_unavailable: str | int = "25%"
    max_surge: str | int = "25%"

    def surge(self, replicas: int) -> int:
        # kubernetes rounds surge up
        return _scaled(self.max_surge, replicas, round_up=True)

    def unavailable(self, replicas: int) -> int:
        # kubernetes rounds unavailability down
        return _scaled(self.max_unavailable, replicas, round_up=False)

    def rollout_iterations(self, replicas: int) -> int:
        """Number of batches kubernetes needs to replace every pod."""
        per_batch = self.surge(replicas) + self.unavailable(replicas)
        if per_batch <= 0:
            return 0
        return math.ceil(replicas / per_batch)

    def verify(self, replicas: int) -> None:
        surge = self.surge(replicas)
        unavailable = self.unavailable(replicas)
        if surge < 0 or unavailable < 0:
            raise ValueError("rollingUpdate parameters must not be negative")
        if surge == 0 and unavailable == 0:
            raise ValueError(
                f"rollingUpdate with {replicas} replicas resolves to zero "
                "maxSurge and zero maxUnavailable; the rollout can never progress"
            )
        if unavailable > replicas:
            raise ValueError(
                f"rollingUpdate maxUnavailable {self.max_unavailable} exceeds "
                f"replicaCount {replicas}"
            )


class AutoScaling(ManifestModel):
    min_replicas: int
    max_replicas: int
    metrics: list[dict[str, Any]] = Field(default_factory=list)

    def verify(self) -> None:
        if self.min_replicas < 1:
            raise ValueError("autoScaling minReplicas must be at least 1")
        if self.min_replicas > self.max_replicas:
            raise ValueError("autoScaling minReplicas exceeds maxReplicas")


# =============================================================================
# Networking
# =============================================================================


class Port(ManifestModel):
    port: int
    name: str | None = None
    protocol: Literal["TCP", "UDP"] = "TCP"

    def verify(self) -> None:
        if not 1 <= self.port <= 65535:
            raise ValueError(f"Port {self.port} is out of range")
        if self.name is not None and not PORT_NAME_PATTERN.fullmatch(self.name):
            raise ValueError(
                f"Port name '{self.name}' must be at most 15 lower case "
                "alphanumerics or dashes"
            )


class HostAlias(ManifestModel):
    ip: str
    hostnames: list[str] = Field(default_factory=list)

    def verify(self) -> None:
        try:
            ipaddress.ip_address(self.ip)
        except ValueError as e:
            raise ValueError(f"Host alias ip '{self.ip}' is not an ip address") from e
        if not self.hostnames:
            raise ValueError(f"Host alias {self.ip} has no hostnames")
        for hostname in self.hostnames:
            if not HOSTNAME_PATTERN.fullmatch(hostname):
                raise ValueError(f"Host alias hostname '{hostname}' is invalid")


class Kong(ManifestModel):
    """Gateway configuration, passed through to the kong generator."""

    model_config = ConfigDict(extra="allow", alias_generator=None)

    uris: str | None = None
    hosts: list[str] = Field(default_factory=list)


class Gate(ManifestModel):
    websockets: bool = False
    public: bool = False


class Kafka(ManifestModel):
    mount_pod_ip: bool = False


# =============================================================================
# Dependencies and metadata
# =============================================================================


class Dependency(ManifestModel):
    """Another service this one talks to."""

    name: str
    api: str = "v1"
    contract: str | None = None
    protocol: Literal["http", "grpc", "kafka", "tcp"] = "http"
    intent: str | None = None

    def verify(self) -> None:
        verify_name(self.name, "Dependency")
        if not re.fullmatch(r"v\d+(alpha\d*|beta\d*)?", self.api):
            raise ValueError(
                f"Dependency {self.name} api '{self.api}' must look like v1, v2beta1"
            )


class Contact(ManifestModel):
    name: str
    slack: str | None = None


class Metadata(ManifestModel):
    """Ownership information, used for notifications."""

    team: str
    contacts: list[Contact] = Field(default_factory=list)
    repo: str | None = None
    support: str | None = None
    notifications: str | None = None

    def verify(self, teams: list[str]) -> None:
        if self.team not in teams:
            raise ValueError(f"Team '{self.team}' is not defined in the config")
        if self.repo is not None and not self.repo.startswith("http"):
            raise ValueError(f"Metadata repo '{self.repo}' must be a url")
        for contact in self.contacts:
            if contact.slack is not None and not contact.slack.startswith("@"):
                raise ValueError(
                    f"Contact {contact.name} slack handle must start with @"
                )


class VaultOpts(ManifestModel):
    """Read secrets from another service's (or region's) folder."""

    name: str
    region: str | None = None


# =============================================================================
# Auxiliary workloads
# =============================================================================


class InitContainer(ManifestModel):
    name: str
    image: str
    command: list[str] = Field(default_factory=list)

    def verify(self) -> None:
        verify_name(self.name, "Init container")
        if not self.image:
            raise ValueError(f"Init container {self.name} needs an image")


class Sidecar(ManifestModel):
    name: str
    image: str | None = None
    version: str | None = None
    resources: Resources | None = None
    env: EnvVars = Field(default_factory=EnvVars)

    def verify(self) -> None:
        verify_name(self.name, "Sidecar")
        if self.resources is not None:
            self.resources.verify()
        self.env.verify()


class Worker(ManifestModel):
    """Separately scaled Deployment that shares the service image."""

    name: str
    resources: Resources
    replica_count: int = 1
    preserve_env: bool = False
    command: list[str] = Field(default_factory=list)
    ports: list[Port] = Field(default_factory=list)
    env: EnvVars = Field(default_factory=EnvVars)
    auto_scaling: AutoScaling | None = None

    def verify(self) -> None:
        verify_name(self.name, "Worker")
        self.resources.verify()
        if self.replica_count < 1 and self.auto_scaling is None:
            raise ValueError(f"Worker {self.name} needs replicaCount of at least 1")
        for port in self.ports:
            port.verify()
        if self.auto_scaling is not None:
            self.auto_scaling.verify()
        self.env.verify()


class CronJob(ManifestModel):
    name: str
    schedule: str
    command: list[str] = Field(default_factory=list)
    image: str | None = None
    version: str | None = None
    resources: Resources | None = None
    env: EnvVars = Field(default_factory=EnvVars)

    def verify(self) -> None:
        verify_name(self.name, "Cron job")
        fields = self.schedule.split()
        if len(fields) != 5 or not all(CRON_FIELD_PATTERN.fullmatch(f) for f in fields):
            raise ValueError(
                f"Cron job {self.name} schedule '{self.schedule}' is not a "
                "five field cron expression"
            )
        if self.resources is not None:
            self.resources.verify()
        self.env.verify()


# =============================================================================
# Access and storage
# =============================================================================


class Tolerations(ManifestModel):
    key: str | None = None
    operator: Literal["Equal", "Exists"] = "Equal"
    value: str | None = None
    effect: Literal["NoSchedule", "PreferNoSchedule", "NoExecute"] | None = None
    toleration_seconds: int | None = None

    def verify(self) -> None:
        if self.operator == "Exists" and self.value:
            raise ValueError("Toleration with operator Exists must not set a value")
        if self.operator == "Equal" and not self.key:
            raise ValueError("Toleration with operator Equal needs a key")
        if self.toleration_seconds is not None and self.effect != "NoExecute":
            raise ValueError("tolerationSeconds only applies to the NoExecute effect")


RBAC_VERBS = frozenset(
    {"get", "list", "watch", "create", "update", "patch", "delete", "deletecollection", "*"}
)


class Rbac(ManifestModel):
    api_groups: list[str]
    resources: list[str]
    verbs: list[str]

    def verify(self) -> None:
        if not self.resources:
            raise ValueError("RBAC rule needs at least one resource")
        if not self.verbs:
            raise ValueError("RBAC rule needs at least one verb")
        unknown = sorted(set(self.verbs) - RBAC_VERBS)
        if unknown:
            raise ValueError(f"RBAC rule has unknown verbs: {', '.join(unknown)}")


class Volume(ManifestModel):
    name: str
    secret: dict[str, Any] | None = None
    config_map: dict[str, Any] | None = None
    empty_dir: dict[str, Any] | None = None
    persistent_volume_claim: dict[str, Any] | None = None
    host_path: dict[str, Any] | None = None


class VolumeMount(ManifestModel):
    name: str
    mount_path: str
    sub_path: str | None = None
    read_only: bool = False


class PersistentVolume(ManifestModel):
    name: str
    claim: str
    mount_path: str
    size: str
    storage_class: str | None = None
    access_mode: Literal["ReadWriteOnce", "ReadOnlyMany", "ReadWriteMany"] = (
        "ReadWriteOnce"
    )

    def verify(self) -> None:
        verify_name(self.name, "Persistent volume")
        verify_name(self.claim, "Persistent volume claim")
        if not self.mount_path.startswith("/"):
            raise ValueError(f"Persistent volume {self.name} mountPath must be absolute")
        parse_memory(self.size)


class ConfigMappedFile(ManifestModel):
    name: str
    dest: str | None = None

    @property
    def destination(self) -> str:
        if self.dest:
            return self.dest
        return self.name.removesuffix(".j2")


class ConfigMap(ManifestModel):
    """Inlined config files."""

    mount: str
    files: list[ConfigMappedFile]

    def verify(self) -> None:
        if not self.mount.startswith("/") or not self.mount.endswith("/"):
            raise ValueError(f"Config mount '{self.mount}' must be an absolute directory")
        if not self.files:
            raise ValueError("Config map has no files")
        seen: set[str] = set()
        for file in self.files:
            if not file.name:
                raise ValueError("Config file needs a name")
            if file.destination in seen:
                raise ValueError(f"Duplicate config file destination {file.destination}")
            seen.add(file.destination)


# =============================================================================
# Managed resources
# =============================================================================


class Rds(ManifestModel):
    engine: Literal["postgres", "mysql"]
    version: str
    size: int = 20
    instance_class: str = "db.t3.medium"

    def verify(self) -> None:
        if self.size < 20:
            raise ValueError("Database size must be at least 20 GB")
        if not self.instance_class.startswith("db."):
            raise ValueError(f"Database instanceClass '{self.instance_class}' is invalid")


class ElastiCache(ManifestModel):
    nodes: int = 1
    node_type: str = "cache.t3.small"

    def verify(self) -> None:
        if self.nodes < 1:
            raise ValueError("Redis needs at least one node")
        if not self.node_type.startswith("cache."):
            raise ValueError(f"Redis nodeType '{self.node_type}' is invalid")
