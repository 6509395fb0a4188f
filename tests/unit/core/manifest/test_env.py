"""Tests for tagged environment variables."""

from __future__ import annotations

import pytest

from src.core.manifest import EnvSource, EnvValue, EnvVars, RawManifest


class TestEnvValueClassify:
    """Tests for parse-time classification of env values."""

    def test_sentinel_is_vault_sourced(self) -> None:
        assert EnvValue.classify("IN_VAULT").source is EnvSource.VAULT

    def test_sentinel_must_match_exactly(self) -> None:
        assert EnvValue.classify("IN_VAULT_LATER").source is EnvSource.PLAIN

    def test_template_marker_is_template_sourced(self) -> None:
        value = EnvValue.classify("{{ base_urls.api }}/v1")
        assert value.source is EnvSource.TEMPLATE
        assert value.secret is False

    def test_as_secret_filter_marks_secret(self) -> None:
        value = EnvValue.classify("{{ 'abc' | as_secret }}")
        assert value.source is EnvSource.TEMPLATE
        assert value.secret is True

    def test_scalars_are_stringified(self) -> None:
        assert EnvValue.classify(True).raw == "true"
        assert EnvValue.classify(8080).raw == "8080"
        assert EnvValue.classify(None).raw == ""


class TestEnvVars:
    """Tests for EnvVars partitions and rendering."""

    def test_partitions(self) -> None:
        env = EnvVars(
            {
                "A": "plain",
                "B": "IN_VAULT",
                "C": "{{ service }}",
                "D": "{{ service | as_secret }}",
            }
        )
        env.render_templates({"service": "payments"})

        assert env.vault_secrets() == ["B"]
        assert env.template_secrets() == {"D": "payments"}
        assert env.plain() == {"A": "plain", "C": "payments"}

    def test_template_secrets_require_rendering(self) -> None:
        env = EnvVars({"D": "{{ service | as_secret }}"})
        with pytest.raises(ValueError, match="not been rendered"):
            env.template_secrets()

    def test_rendering_starts_from_raw_template(self) -> None:
        env = EnvVars({"URL": "{{ host }}/x"})
        env.render_templates({"host": "a"})
        env.render_templates({"host": "b"})
        assert env["URL"].value == "b/x"
        assert env["URL"].raw == "{{ host }}/x"

    def test_unknown_template_variable_fails(self) -> None:
        env = EnvVars({"URL": "{{ missing }}"})
        with pytest.raises(ValueError, match="URL"):
            env.render_templates({})

    def test_merged_override_wins(self) -> None:
        merged = EnvVars({"A": "1", "B": "2"}).merged(EnvVars({"B": "3"}))
        assert merged == {"A": "1", "B": "3"}

    def test_verify_rejects_invalid_key(self) -> None:
        with pytest.raises(ValueError, match="BAD-KEY"):
            EnvVars({"BAD-KEY": "x"}).verify()

    def test_verify_rejects_malformed_template(self) -> None:
        with pytest.raises(ValueError, match="Invalid template"):
            EnvVars({"A": "{{ unclosed"}).verify()

    def test_parsed_from_manifest_yaml_scalars(self) -> None:
        manifest = RawManifest.model_validate(
            {"name": "x", "env": {"PORT": 80, "DEBUG": False, "SECRET": "IN_VAULT"}}
        )
        assert manifest.env.to_mapping() == {
            "PORT": "80",
            "DEBUG": "false",
            "SECRET": "IN_VAULT",
        }
        assert manifest.env.vault_secrets() == ["SECRET"]
