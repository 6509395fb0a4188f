"""Config and region models for ``shipyard.yml``."""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

SEMVER_PATTERN = re.compile(
    r"^v?(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(-[0-9A-Za-z.-]+)?(\+[0-9A-Za-z.-]+)?$"
)
GIT_SHA_PATTERN = re.compile(r"^[0-9a-f]{40}$")


class ConfigError(Exception):
    """Raised when the shipyard config is missing or invalid."""


class VersionScheme(str, Enum):
    """Versions a region accepts."""

    SEMVER = "Semver"
    GIT_SHA_OR_SEMVER = "GitShaOrSemver"

    def verify(self, version: str) -> None:
        """Raise ``ValueError`` if ``version`` does not fit the scheme."""
        if SEMVER_PATTERN.fullmatch(version):
            return
        if self is VersionScheme.GIT_SHA_OR_SEMVER and GIT_SHA_PATTERN.fullmatch(
            version
        ):
            return
        expected = (
            "a semver version"
            if self is VersionScheme.SEMVER
            else "a semver version or a 40 character git sha"
        )
        raise ValueError(f"Version '{version}' is not {expected}")


class ConfigModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class VaultConfig(ConfigModel):
    """Secret store endpoint for a region."""

    url: str
    folder: str


class Team(ConfigModel):
    name: str
    owners: list[str] = Field(default_factory=list)
    slack: str | None = None


class ManifestDefaults(ConfigModel):
    """Values a manifest inherits when it does not set them."""

    image_prefix: str
    chart: str = "base"
    replica_count: int = 2
    env: dict[str, str] = Field(default_factory=dict)


class Region(ConfigModel):
    """A cluster/namespace pair that services are deployed to."""

    name: str
    namespace: str
    environment: str
    cluster: str | None = None
    versioning_scheme: VersionScheme = VersionScheme.SEMVER
    vault: VaultConfig
    base_urls: dict[str, str] = Field(default_factory=dict)
    env: dict[str, str] = Field(default_factory=dict)


class Config(ConfigModel):
    """Process wide configuration, read-only once loaded."""

    defaults: ManifestDefaults
    regions: list[Region]
    teams: list[Team] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_regions(self) -> Config:
        names = [r.name for r in self.regions]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate regions: {', '.join(duplicates)}")
        return self

    def get_region(self, name: str) -> Region:
        """Look up a region by name.

        Raises:
            ConfigError: If the region is not configured
        """
        for region in self.regions:
            if region.name == name:
                return region
        known = ", ".join(r.name for r in self.regions)
        raise ConfigError(f"Unknown region '{name}' (known: {known})")

    def team_names(self) -> list[str]:
        return [t.name for t in self.teams]

    def vault_folders(self) -> dict[str, str]:
        """Secret store folder of every region, keyed by region name."""
        return {r.name: r.vault.folder for r in self.regions}
