"""Tests for ordered manifest validation."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from src.core.config import Config, Region
from src.core.manifest import (
    Manifest,
    ManifestFailure,
    ManifestValidationError,
    verify,
)

MakeManifest = Callable[..., Manifest]


class TestValidManifests:
    def test_base_manifest_is_valid(
        self, make_manifest: MakeManifest, config: Config, region: Region
    ) -> None:
        verify(make_manifest(), config, region)

    def test_git_sha_accepted_where_region_allows_it(
        self, make_manifest: MakeManifest, config: Config, region: Region
    ) -> None:
        verify(make_manifest({"version": "a" * 40}), config, region)

    def test_external_service_skips_field_checks(
        self, make_manifest: MakeManifest, config: Config, region: Region
    ) -> None:
        manifest = make_manifest(
            {"external": True}, remove=("resources", "metadata", "health")
        )
        verify(manifest, config, region)


class TestIdentity:
    """Checks that apply to every service, external or not."""

    def test_region_must_be_listed(
        self, make_manifest: MakeManifest, config: Config, region: Region
    ) -> None:
        manifest = make_manifest({"external": True, "regions": ["prod-uk"]})
        with pytest.raises(ManifestValidationError, match="dev-uk"):
            verify(manifest, config, region)

    @pytest.mark.parametrize(
        "name", ["Payments", "pay_ments", "-payments", "a" * 51, "payments\n"]
    )
    def test_invalid_service_name(
        self, make_manifest: MakeManifest, config: Config, region: Region, name: str
    ) -> None:
        manifest = make_manifest()
        manifest.name = name
        with pytest.raises(ManifestValidationError):
            verify(manifest, config, region)


class TestUserErrors:
    def test_http_port_without_health_check(
        self, make_manifest: MakeManifest, config: Config, region: Region
    ) -> None:
        manifest = make_manifest(remove=("health",))
        with pytest.raises(ManifestValidationError) as excinfo:
            verify(manifest, config, region)

        assert excinfo.value.service == "payments"
        assert "payments" in excinfo.value.message
        assert "health check" in excinfo.value.message

    def test_readiness_probe_counts_as_health_check(
        self, make_manifest: MakeManifest, config: Config, region: Region
    ) -> None:
        manifest = make_manifest(
            {"readinessProbe": {"httpGet": {"path": "/ready", "port": 8000}}},
            remove=("health",),
        )
        verify(manifest, config, region)

    def test_zero_replicas(
        self, make_manifest: MakeManifest, config: Config, region: Region
    ) -> None:
        with pytest.raises(ManifestValidationError, match="replicaCount"):
            verify(make_manifest({"replicaCount": 0}), config, region)

    def test_missing_resources(
        self, make_manifest: MakeManifest, config: Config, region: Region
    ) -> None:
        with pytest.raises(ManifestValidationError, match="resources are required"):
            verify(make_manifest(remove=("resources",)), config, region)

    def test_missing_metadata(
        self, make_manifest: MakeManifest, config: Config, region: Region
    ) -> None:
        with pytest.raises(ManifestValidationError, match="metadata"):
            verify(make_manifest(remove=("metadata",)), config, region)

    def test_unknown_team(
        self, make_manifest: MakeManifest, config: Config, region: Region
    ) -> None:
        manifest = make_manifest({"metadata": {"team": "ghosts"}})
        with pytest.raises(ManifestValidationError, match="ghosts"):
            verify(manifest, config, region)

    def test_git_sha_rejected_in_semver_region(
        self, make_manifest: MakeManifest, config: Config
    ) -> None:
        manifest = make_manifest({"version": "a" * 40})
        with pytest.raises(ManifestValidationError, match="semver"):
            verify(manifest, config, config.get_region("prod-uk"))

    def test_gate_requires_kong(
        self, make_manifest: MakeManifest, config: Config, region: Region
    ) -> None:
        with pytest.raises(ManifestValidationError, match="kong"):
            verify(make_manifest({"gate": {"public": False}}), config, region)

    def test_gate_public_must_match(
        self, make_manifest: MakeManifest, config: Config, region: Region
    ) -> None:
        manifest = make_manifest(
            {"gate": {"public": True}, "kong": {"uris": "/payments"}}
        )
        with pytest.raises(ManifestValidationError, match="publiclyAccessible"):
            verify(manifest, config, region)

    def test_rolling_update_that_never_progresses(
        self, make_manifest: MakeManifest, config: Config, region: Region
    ) -> None:
        manifest = make_manifest(
            {"rollingUpdate": {"maxSurge": 0, "maxUnavailable": 0}}
        )
        with pytest.raises(ManifestValidationError, match="rollingUpdate"):
            verify(manifest, config, region)

    def test_invalid_worker_is_named(
        self, make_manifest: MakeManifest, config: Config, region: Region
    ) -> None:
        manifest = make_manifest(
            {
                "workers": [
                    {
                        "name": "Consumer",
                        "resources": {
                            "requests": {"cpu": "100m", "memory": "64Mi"},
                            "limits": {"cpu": "200m", "memory": "128Mi"},
                        },
                    }
                ]
            }
        )
        with pytest.raises(ManifestValidationError, match="invalid worker"):
            verify(manifest, config, region)

    def test_small_database(
        self, make_manifest: MakeManifest, config: Config, region: Region
    ) -> None:
        manifest = make_manifest(
            {"database": {"engine": "postgres", "version": "15", "size": 10}}
        )
        with pytest.raises(ManifestValidationError, match="database"):
            verify(manifest, config, region)

    def test_invalid_env_key(
        self, make_manifest: MakeManifest, config: Config, region: Region
    ) -> None:
        manifest = make_manifest({"env": {"BAD-KEY": "x"}})
        with pytest.raises(ManifestValidationError, match="invalid env"):
            verify(manifest, config, region)


class TestInternalFailures:
    """Fields the merge guarantees are reported as bugs, not user errors."""

    @pytest.mark.parametrize("field", ["chart", "image", "namespace", "environment"])
    def test_emptied_guaranteed_field(
        self,
        make_manifest: MakeManifest,
        config: Config,
        region: Region,
        field: str,
    ) -> None:
        manifest = make_manifest()
        setattr(manifest, field, "")

        with pytest.raises(ManifestFailure) as excinfo:
            verify(manifest, config, region)
        assert excinfo.value.key == field

    def test_missing_replica_count(
        self, make_manifest: MakeManifest, config: Config, region: Region
    ) -> None:
        manifest = make_manifest()
        manifest.replica_count = None
        with pytest.raises(ManifestFailure, match="replicaCount"):
            verify(manifest, config, region)

    def test_failure_is_not_a_validation_error(
        self, make_manifest: MakeManifest, config: Config, region: Region
    ) -> None:
        manifest = make_manifest()
        manifest.image = ""
        with pytest.raises(ManifestFailure) as excinfo:
            verify(manifest, config, region)
        assert not isinstance(excinfo.value, ManifestValidationError)
