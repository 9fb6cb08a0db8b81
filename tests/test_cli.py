"""Tests for CLI commands."""

import json

import httpx
import pytest
import yaml
from typer.testing import CliRunner

import homesoc.cli.intel_cmd as intel_cmd
from homesoc import __version__
from homesoc.cli.app import app
from homesoc.intel.aggregator import summarize, write_cache
from homesoc.intel.models import SourceResult, ThreatReport

runner = CliRunner()

SS_TABLE = (
    "Netid State  Recv-Q Send-Q Local Address:Port  Peer Address:Port Process\\n"
    "tcp   LISTEN 0      128    0.0.0.0:22          0.0.0.0:*\\n"
    "tcp   ESTAB  0      0      192.168.1.5:22      192.168.1.9:51000\\n"
)


@pytest.fixture
def config_file(tmp_path):
    """Write a config pointing at a temp data dir. Returns a writer."""

    def write(**overrides):
        data = {"data": {"dir": str(tmp_path / "data")}}
        data.update(overrides)
        path = tmp_path / "homesoc.yaml"
        path.write_text(yaml.safe_dump(data))
        return path

    return write


def test_version_command():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert f"homesoc version {__version__}" in result.stdout


def test_help_command():
    result = runner.invoke(app, ["--help"])

    assert result.exit_code == 0
    assert "scan" in result.stdout
    assert "aggregate" in result.stdout
    assert "summary" in result.stdout


class TestScan:
    def test_first_and_second_cycle(self, config_file, tmp_path):
        path = config_file(network={"command": ["printf", SS_TABLE]})

        first = runner.invoke(app, ["scan", "--config", str(path)])
        second = runner.invoke(app, ["scan", "--config", str(path)])

        assert first.exit_code == 0
        assert second.exit_code == 0
        assert "No anomalies detected" in second.stdout
        state = json.loads((tmp_path / "data" / "network-state.json").read_text())
        assert state["stats"] == {
            "totalConnections": 1,
            "establishedConnections": 1,
            "listeningPorts": 1,
        }

    def test_collection_failure_exits_nonzero(self, config_file, tmp_path):
        path = config_file(network={"command": ["false"]})

        result = runner.invoke(app, ["scan", "-c", str(path)])

        assert result.exit_code == 1
        assert "Scan failed" in result.stdout
        assert not (tmp_path / "data" / "network-state.json").exists()

    def test_invalid_config(self, config_file):
        path = config_file(network={"detection": {"suspicious_ports": [70000]}})

        result = runner.invoke(app, ["scan", "-c", str(path)])

        assert result.exit_code == 2
        assert "Configuration error" in result.stdout


class TestAggregate:
    def test_writes_cache(self, config_file, tmp_path, monkeypatch):
        def handler(request):
            if request.url.host == "api.ransomware.live":
                return httpx.Response(200, json=[{"post_title": "acme", "group_name": "akira"}])
            return httpx.Response(503)

        build = intel_cmd.build_aggregator

        def build_with_mock(config):
            aggregator = build(config)
            aggregator.transport = httpx.MockTransport(handler)
            return aggregator

        monkeypatch.setattr(intel_cmd, "build_aggregator", build_with_mock)
        path = config_file()

        result = runner.invoke(app, ["aggregate", "-c", str(path)])

        assert result.exit_code == 0
        cache = json.loads((tmp_path / "data" / "threat-cache.json").read_text())
        assert cache["summary"]["totalThreats"] == 1
        assert [s["status"] for s in cache["summary"]["sources"]] == ["ok", "error", "error"]


class TestSummary:
    def test_without_cache(self, config_file):
        result = runner.invoke(app, ["summary", "-c", str(config_file())])

        assert result.exit_code == 1
        assert "aggregate" in result.stdout

    def test_with_cache(self, config_file, tmp_path):
        results = [
            SourceResult(
                source="Ransomware.live",
                count=1,
                items=[{"type": "victim", "name": "acme", "severity": "high"}],
            ),
            SourceResult.failed("URLhaus", "HTTP 500"),
        ]
        write_cache(
            tmp_path / "data" / "threat-cache.json",
            ThreatReport(summary=summarize(results), threats=results),
        )

        result = runner.invoke(app, ["summary", "-c", str(config_file())])

        assert result.exit_code == 0
        assert "Ransomware.live" in result.stdout
        assert "URLhaus" in result.stdout
        assert "High severity: 1" in result.stdout
