"""Unit tests for the CLI — command registration and basic behavior.

Exercises help output, target listing, one-shot resolution and the
stdin relay loop via typer.testing.CliRunner.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from typer.testing import CliRunner

from detection_relay.cli.app import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _write_config(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "relay.toml"
    path.write_text(text)
    return path


# ---------------------------------------------------------------------------
# Test: CLI help and registration
# ---------------------------------------------------------------------------


class TestCliApp:
    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert result.exit_code in (0, 2)
        assert "Usage" in result.output

    def test_help_lists_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("run", "targets", "resolve"):
            assert command in result.output

    @pytest.mark.parametrize("command", ["run", "targets", "resolve"])
    def test_command_help(self, command):
        result = runner.invoke(app, [command, "--help"])
        assert result.exit_code == 0
        assert "--config" in result.output


# ---------------------------------------------------------------------------
# Test: targets
# ---------------------------------------------------------------------------


class TestTargetsCommand:
    def test_lists_every_stream(self, tmp_path):
        path = _write_config(
            tmp_path,
            'store_node = "http://store.test:9200"\n'
            "[[targets]]\n"
            'protocol = "udp"\n'
            'host = "10.0.0.255"\n'
            "port = 50001\n"
            "[[digest_targets]]\n"
            'protocol = "search_index"\n',
        )
        result = runner.invoke(app, ["targets", "--config", str(path)])
        assert result.exit_code == 0
        assert "10.0.0.255:50001" in result.output
        assert "digest" in result.output
        assert "http://store.test:9200" in result.output

    def test_no_targets(self, tmp_path):
        path = _write_config(tmp_path, "targets = []\n")
        result = runner.invoke(app, ["targets", "-c", str(path)])
        assert result.exit_code == 0
        assert "No targets configured" in result.output

    def test_missing_config_exits_1(self, tmp_path):
        result = runner.invoke(app, ["targets", "-c", str(tmp_path / "absent.toml")])
        assert result.exit_code == 1
        assert "Config not found" in result.output

    def test_malformed_toml_exits_1(self, tmp_path):
        path = _write_config(tmp_path, "store_node = = \"x\"\n")
        result = runner.invoke(app, ["targets", "-c", str(path)])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_environment_targets_merge_with_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DETECTION_RELAY_TARGETS", '[{"protocol": "search_index"}]')
        path = _write_config(tmp_path, 'store_node = "http://store.test:9200"\n')
        result = runner.invoke(app, ["targets", "-c", str(path)])
        assert result.exit_code == 0
        assert "search_index" in result.output
        assert "http://store.test:9200" in result.output

    def test_invalid_config_exits_1(self, tmp_path):
        path = _write_config(tmp_path, '[[targets]]\nprotocol = "search_index"\n')
        result = runner.invoke(app, ["targets", "-c", str(path)])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output


# ---------------------------------------------------------------------------
# Test: resolve
# ---------------------------------------------------------------------------


class TestResolveCommand:
    def test_ip_literal_is_valid(self, tmp_path):
        path = _write_config(
            tmp_path,
            '[[targets]]\nprotocol = "udp"\nhost = "127.0.0.1"\nport = 50001\n',
        )
        result = runner.invoke(app, ["resolve", "-c", str(path)])
        assert result.exit_code == 0
        assert "127.0.0.1" in result.output
        assert "Yes" in result.output
        assert "Next refresh in 60s" in result.output

    def test_no_udp_targets(self, tmp_path):
        path = _write_config(
            tmp_path, '[[targets]]\nprotocol = "webhook"\nhost = "hook.test"\n'
        )
        result = runner.invoke(app, ["resolve", "-c", str(path)])
        assert result.exit_code == 0
        assert "No UDP targets configured" in result.output


# ---------------------------------------------------------------------------
# Test: run
# ---------------------------------------------------------------------------


class TestRunCommand:
    def test_relays_stdin_records(self, tmp_path):
        path = _write_config(tmp_path, "targets = []\n")
        lines = [
            json.dumps(
                {"transmitterId": "aa", "transmitterIdType": 2, "timestamp": 1, "rssi": -60}
            ),
            json.dumps(
                {"transmitterId": "bb", "transmitterIdType": 2, "timestamp": 2, "rssi": -99}
            ),
            "not json",
            "",
        ]
        result = runner.invoke(
            app, ["run", "-c", str(path), "-l", "WARNING"], input="\n".join(lines) + "\n"
        )
        assert result.exit_code == 0
        assert "Relayed 1/2 records" in result.output
        assert "0 errors" in result.output
