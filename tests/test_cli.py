"""Tests for the k8s-deletion-inspector command line."""

from __future__ import annotations

import pytest
from click.testing import CliRunner
from conftest import FakeClusterAccessor

from k8sdeletioninspector import cli
from k8sdeletioninspector.cli import main


@pytest.fixture
def fake_cluster(monkeypatch: pytest.MonkeyPatch) -> FakeClusterAccessor:
    accessor = FakeClusterAccessor()
    monkeypatch.setattr(cli, "create_k8sclient", lambda kubeconfig: object())
    monkeypatch.setattr(cli, "KubernetesAccessor", lambda client: accessor)
    return accessor


def test_cli_help() -> None:
    runner = CliRunner()
    result = runner.invoke(main, ["--help"])
    assert result.exit_code == 0
    assert "Terminating" in result.output
    assert "--delete-after" in result.output
    assert "DELETE_AFTER" in result.output


def test_cli_version() -> None:
    runner = CliRunner()
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert result.output.startswith("Version: ")
    assert "Git Commit:" in result.output


def test_cli_once(fake_cluster: FakeClusterAccessor) -> None:
    runner = CliRunner()
    result = runner.invoke(main, ["--once", "--no-debug"])
    assert result.exit_code == 0, result.output
    assert fake_cluster.operations("verify_access")


def test_cli_once_fatal(fake_cluster: FakeClusterAccessor) -> None:
    fake_cluster.fail("verify_access", status=403)
    runner = CliRunner()
    result = runner.invoke(main, ["--once", "--no-debug"])
    assert result.exit_code == 1


@pytest.mark.parametrize("value", ["0", "-1"])
def test_cli_rejects_scan_interval_below_one_hour(
    fake_cluster: FakeClusterAccessor, value: str
) -> None:
    runner = CliRunner()
    result = runner.invoke(main, ["--once", "--scan-interval", value])
    assert result.exit_code == 2
    assert "--scan-interval" in result.output
    assert fake_cluster.calls == []


def test_cli_reads_environment(
    fake_cluster: FakeClusterAccessor, monkeypatch: pytest.MonkeyPatch
) -> None:
    seen = {}
    original = cli.InspectorState

    def capture(config):  # type: ignore[no-untyped-def]
        seen["config"] = config
        return original(config=config)

    monkeypatch.setattr(cli, "InspectorState", capture)
    runner = CliRunner()
    result = runner.invoke(
        main,
        ["--once"],
        env={
            "DEBUG": "false",
            "DELETE_AFTER": "12",
            "SCAN_INTERVAL": "6",
            "REGISTRY_RETENTION": "cumulative",
        },
    )
    assert result.exit_code == 0, result.output
    config = seen["config"]
    assert config.debug is False
    assert config.delete_after_hours == 12
    assert config.scan_interval_hours == 6
    assert config.retention.value == "cumulative"
    assert config.metrics_port == 9000
