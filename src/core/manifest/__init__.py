"""Service manifests: models, merge, secret reconciliation, validation and ordering.

A manifest travels through the pipeline as:

1. RawManifest documents (base + region override) read from the manifest root
2. merge_manifest() combines them with config defaults (kind ``Merged``)
3. SecretReconciler.resolve() fills the secrets map (kind ``Completed``)
4. verify() checks it before rollout
"""

from .env import EnvSource, EnvValue, EnvVars
from .errors import (
    DependencyCycleError,
    ManifestError,
    ManifestFailure,
    ManifestParseError,
    ManifestValidationError,
    SecretReconciliationError,
)
from .graph import DependencyGraph, build
from .loader import (
    available_services,
    load_manifest,
    load_raw_manifest,
    load_region_override,
)
from .merge import Defaults, merge_manifest
from .models import Manifest, ManifestKind, RawManifest
from .secrets import (
    SecretReconciler,
    resolve_secrets,
    template_context,
    vault_path,
    verify_secrets_exist,
)
from .structs import Validatable
from .validator import verify

__all__ = [
    "Defaults",
    "DependencyCycleError",
    "DependencyGraph",
    "EnvSource",
    "EnvValue",
    "EnvVars",
    "Manifest",
    "ManifestError",
    "ManifestFailure",
    "ManifestKind",
    "ManifestParseError",
    "ManifestValidationError",
    "RawManifest",
    "SecretReconciler",
    "SecretReconciliationError",
    "Validatable",
    "available_services",
    "build",
    "load_manifest",
    "load_raw_manifest",
    "load_region_override",
    "merge_manifest",
    "resolve_secrets",
    "template_context",
    "vault_path",
    "verify",
    "verify_secrets_exist",
]
