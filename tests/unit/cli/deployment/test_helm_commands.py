"""Tests for Helm and kubectl command construction."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from src.cli.deployment.shell_commands.helm import HelmCommands
from src.cli.deployment.shell_commands.kubectl import KubectlCommands
from src.cli.deployment.shell_commands.types import CommandResult, HelmRevision


@pytest.fixture
def mock_runner() -> MagicMock:
    """Create a mock command runner."""
    runner = MagicMock()
    runner.run.return_value = CommandResult(success=True)
    runner.run_streaming.return_value = CommandResult(success=True)
    return runner


@pytest.fixture
def helm_commands(mock_runner: MagicMock) -> HelmCommands:
    return HelmCommands(mock_runner)


class TestHelmUpgrade:
    """Tests for upgrade --install and diff."""

    def test_upgrade_install_command(
        self, helm_commands: HelmCommands, mock_runner: MagicMock
    ) -> None:
        helm_commands.upgrade_install(
            "payments",
            Path("charts/base"),
            "apps",
            values_file=Path("/tmp/payments.yml"),
        )

        cmd = mock_runner.run.call_args[0][0]
        assert cmd == [
            "helm",
            "upgrade",
            "--install",
            "payments",
            "charts/base",
            "--namespace",
            "apps",
            "-f",
            "/tmp/payments.yml",
            "--timeout",
            "10m",
        ]

    def test_upgrade_install_leaves_waiting_to_the_caller(
        self, helm_commands: HelmCommands, mock_runner: MagicMock
    ) -> None:
        helm_commands.upgrade_install(
            "payments",
            Path("charts/base"),
            "apps",
            values_file=Path("/tmp/payments.yml"),
            timeout="3m",
        )

        cmd = mock_runner.run.call_args[0][0]
        assert "--wait" not in cmd
        assert cmd[cmd.index("--timeout") + 1] == "3m"

    def test_upgrade_install_streams_output(
        self, helm_commands: HelmCommands, mock_runner: MagicMock
    ) -> None:
        on_output = MagicMock()

        helm_commands.upgrade_install(
            "payments",
            Path("charts/base"),
            "apps",
            values_file=Path("/tmp/payments.yml"),
            on_output=on_output,
        )

        mock_runner.run.assert_not_called()
        assert mock_runner.run_streaming.call_args.kwargs["on_output"] is on_output

    def test_diff_does_not_mutate(
        self, helm_commands: HelmCommands, mock_runner: MagicMock
    ) -> None:
        helm_commands.diff_upgrade(
            "payments", Path("charts/base"), "apps", values_file=Path("/tmp/v.yml")
        )

        cmd = mock_runner.run.call_args[0][0]
        assert cmd[:4] == ["helm", "diff", "upgrade", "payments"]
        assert "--allow-unreleased" in cmd
        assert "--install" not in cmd


class TestHelmRollback:
    """Tests for Helm rollback command."""

    def test_rollback_to_previous_revision(
        self, helm_commands: HelmCommands, mock_runner: MagicMock
    ) -> None:
        """Rollback without revision should rollback to previous."""
        mock_runner.run.return_value = CommandResult(
            success=True, stdout="Rollback was a success!", stderr="", returncode=0
        )

        result = helm_commands.rollback("payments", "apps")

        assert result.success
        cmd = mock_runner.run.call_args[0][0]
        assert cmd == ["helm", "rollback", "payments", "-n", "apps", "--wait", "--timeout", "5m"]

    def test_rollback_to_specific_revision(
        self, helm_commands: HelmCommands, mock_runner: MagicMock
    ) -> None:
        helm_commands.rollback("payments", "apps", revision=3)

        cmd = mock_runner.run.call_args[0][0]
        assert cmd[5] == "3"

    def test_rollback_without_wait(
        self, helm_commands: HelmCommands, mock_runner: MagicMock
    ) -> None:
        helm_commands.rollback("payments", "apps", wait=False, timeout="2m")

        cmd = mock_runner.run.call_args[0][0]
        assert "--wait" not in cmd
        assert "2m" in cmd


class TestHelmQueries:
    """Tests for get values and history."""

    def test_get_values(self, helm_commands: HelmCommands, mock_runner: MagicMock) -> None:
        mock_runner.run.return_value = CommandResult(
            success=True, stdout='{"version": "1.2.3", "replicaCount": 2}'
        )

        values = helm_commands.get_values("payments", "apps")

        assert values == {"version": "1.2.3", "replicaCount": 2}
        assert mock_runner.run.call_args[0][0] == [
            "helm", "get", "values", "payments", "-n", "apps", "-o", "json"
        ]

    @pytest.mark.parametrize(
        "result",
        [
            CommandResult(success=False, stderr="Error: release: not found", returncode=1),
            CommandResult(success=True, stdout="null"),
            CommandResult(success=True, stdout="not json"),
        ],
    )
    def test_get_values_of_missing_release(
        self, helm_commands: HelmCommands, mock_runner: MagicMock, result: CommandResult
    ) -> None:
        mock_runner.run.return_value = result
        assert helm_commands.get_values("payments", "apps") is None

    def test_history_returns_parsed_revisions(
        self, helm_commands: HelmCommands, mock_runner: MagicMock
    ) -> None:
        history_json = """[
            {"revision": 1, "status": "superseded", "chart": "base-0.1.0", "app_version": "1.2.2", "description": "Install complete"},
            {"revision": 2, "status": "deployed", "chart": "base-0.1.0", "app_version": "1.2.3", "description": "Upgrade complete"}
        ]"""
        mock_runner.run.return_value = CommandResult(success=True, stdout=history_json)

        result = helm_commands.history("payments", "apps")

        assert result == [
            HelmRevision(1, "superseded", "base-0.1.0", "1.2.2", "Install complete"),
            HelmRevision(2, "deployed", "base-0.1.0", "1.2.3", "Upgrade complete"),
        ]

    def test_history_command_format(
        self, helm_commands: HelmCommands, mock_runner: MagicMock
    ) -> None:
        mock_runner.run.return_value = CommandResult(success=True, stdout="[]")

        helm_commands.history("payments", "apps", max_revisions=5)

        assert mock_runner.run.call_args[0][0] == [
            "helm", "history", "payments", "-n", "apps", "-o", "json", "--max", "5"
        ]

    @pytest.mark.parametrize("stdout", ["", "not valid json"])
    def test_history_empty_on_bad_output(
        self, helm_commands: HelmCommands, mock_runner: MagicMock, stdout: str
    ) -> None:
        mock_runner.run.return_value = CommandResult(success=True, stdout=stdout)
        assert helm_commands.history("payments", "apps") == []


class TestKubectlRollout:
    def test_rollout_status_command(self, mock_runner: MagicMock) -> None:
        KubectlCommands(mock_runner).rollout_status("payments", "apps")

        assert mock_runner.run.call_args[0][0] == [
            "kubectl", "rollout", "status", "deployment/payments", "-n", "apps", "--watch=false"
        ]

    @pytest.mark.parametrize(
        ("result", "expected"),
        [
            (CommandResult(success=True, stdout='deployment "payments" successfully rolled out'), True),
            (CommandResult(success=True, stdout="Waiting for 1 of 2 updated replicas"), False),
            (CommandResult(success=False, stderr="not found", returncode=1), False),
        ],
    )
    def test_is_rolled_out(
        self, mock_runner: MagicMock, result: CommandResult, expected: bool
    ) -> None:
        mock_runner.run.return_value = result
        assert KubectlCommands(mock_runner).is_rolled_out("payments", "apps") is expected

    def test_current_context(self, mock_runner: MagicMock) -> None:
        mock_runner.run.return_value = CommandResult(success=True, stdout="kube-dev\n")
        assert KubectlCommands(mock_runner).current_context() == "kube-dev"

    def test_current_context_without_kubectl(self, mock_runner: MagicMock) -> None:
        mock_runner.run.return_value = CommandResult(success=False, returncode=127)
        assert KubectlCommands(mock_runner).current_context() == ""
