"""End-to-end tests of the CLI against a manifest root on disk."""

from collections.abc import Iterator
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
import yaml
from typer.testing import CliRunner

import src.cli as cli_module
from src.cli import app
from src.cli.deployment.rollout import RolloutExecutor
from src.core.vault import MOCKED_SECRET, mocked

runner = CliRunner()


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli_module, "configure_logging", lambda verbose=False: None)


def _invoke(root: Path, *args: str):
    return runner.invoke(app, ["--root", str(root), *args])


class TestValidate:
    def test_valid_services(self, manifest_root: Path) -> None:
        result = _invoke(manifest_root, "validate", "payments", "ledger", "-r", "dev-uk")

        assert result.exit_code == 0, result.output
        assert "payments is valid for dev-uk" in result.output
        assert "ledger is valid for dev-uk" in result.output

    def test_invalid_service_fails(
        self, manifest_root: Path, base_data: dict[str, Any]
    ) -> None:
        del base_data["health"]
        path = manifest_root / "services" / "payments" / "manifest.yml"
        path.write_text(yaml.safe_dump(base_data))

        result = _invoke(manifest_root, "validate", "payments", "ledger", "-r", "dev-uk")

        assert result.exit_code == 1
        assert "health check" in result.output
        assert "1 of 2 manifests failed validation" in result.output

    def test_root_option_wins_over_cwd_and_env(
        self,
        manifest_root: Path,
        tmp_path_factory: pytest.TempPathFactory,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        elsewhere = tmp_path_factory.mktemp("elsewhere")
        monkeypatch.chdir(elsewhere)
        monkeypatch.setenv("SHIPYARD_MANIFEST_DIR", str(elsewhere))

        result = _invoke(manifest_root, "validate", "payments", "-r", "dev-uk")

        assert result.exit_code == 0, result.output
        assert "payments is valid for dev-uk" in result.output

    def test_unknown_region(self, manifest_root: Path) -> None:
        result = _invoke(manifest_root, "validate", "payments", "-r", "mars")

        assert result.exit_code == 1
        assert "Unknown region" in result.output


class TestShow:
    def test_secrets_are_redacted(self, manifest_root: Path) -> None:
        result = _invoke(manifest_root, "show", "payments", "-r", "prod-uk")

        assert result.exit_code == 0, result.output
        assert "<redacted>" in result.output
        assert MOCKED_SECRET not in result.output
        assert "replicaCount: 4" in result.output


class TestGraph:
    def test_rollout_order(self, manifest_root: Path) -> None:
        result = _invoke(manifest_root, "graph", "-r", "dev-uk")

        assert result.exit_code == 0, result.output
        assert result.output.index("ledger") < result.output.index("payments")
        assert "after ledger" in result.output

    def test_batches(self, manifest_root: Path) -> None:
        result = _invoke(manifest_root, "graph", "-r", "dev-uk", "--batches")

        assert result.exit_code == 0, result.output
        assert "1. ledger" in result.output
        assert "2. payments" in result.output


class TestListings:
    def test_list_services(self, manifest_root: Path) -> None:
        result = _invoke(manifest_root, "list", "services")
        assert result.output.split() == ["ledger", "payments"]

    def test_list_regions(self, manifest_root: Path) -> None:
        result = _invoke(manifest_root, "list", "regions")

        assert result.exit_code == 0, result.output
        assert "dev-uk" in result.output
        assert "GitShaOrSemver" in result.output


class TestRollout:
    @pytest.fixture
    def executor(self) -> MagicMock:
        executor = MagicMock(spec=RolloutExecutor)
        executor.rollout_status.return_value = True
        return executor

    @pytest.fixture
    def kube_context(self) -> Iterator[MagicMock]:
        with patch(
            "src.cli.deployment.shell_commands.kubectl.KubectlCommands.current_context",
            return_value="kube-dev",
        ) as current_context:
            yield current_context

    @pytest.fixture(autouse=True)
    def _fake_cluster(self, executor: MagicMock) -> Iterator[None]:
        with (
            patch("src.core.vault.regional", return_value=mocked()),
            patch("src.cli.commands.rollout.HelmExecutor", return_value=executor),
        ):
            yield

    def test_rollout_reports_and_exits_zero(
        self, manifest_root: Path, executor: MagicMock, kube_context: MagicMock
    ) -> None:
        result = _invoke(
            manifest_root,
            "rollout", "payments", "ledger",
            "-r", "dev-uk",
            "--mode", "upgrade",
            "--ordered",
            "--yes",
        )

        assert result.exit_code == 0, result.output
        assert executor.upgrade.call_count == 2
        assert "All services succeeded" in result.output

    def test_failed_service_exits_non_zero(
        self, manifest_root: Path, kube_context: MagicMock
    ) -> None:
        result = _invoke(
            manifest_root, "rollout", "payments", "ghost", "-r", "dev-uk", "--mode", "diff"
        )

        assert result.exit_code == 1
        assert "skipped" in result.output

    def test_wrong_kube_context_aborts(
        self, manifest_root: Path, executor: MagicMock, kube_context: MagicMock
    ) -> None:
        kube_context.return_value = "kube-prod"

        result = _invoke(manifest_root, "rollout", "payments", "-r", "dev-uk", "--yes")

        assert result.exit_code == 1
        assert "does not match" in result.output
        executor.upgrade.assert_not_called()
