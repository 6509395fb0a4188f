"""Read-only configuration: regions, teams and manifest defaults."""

from .loader import load_config, resolve_root, substitute_env_vars
from .models import (
    Config,
    ConfigError,
    ManifestDefaults,
    Region,
    Team,
    VaultConfig,
    VersionScheme,
)

__all__ = [
    "Config",
    "ConfigError",
    "ManifestDefaults",
    "Region",
    "Team",
    "VaultConfig",
    "VersionScheme",
    "load_config",
    "resolve_root",
    "substitute_env_vars",
]
