"""Tests for API server and configuration CLI commands."""

import json
import os
from unittest.mock import MagicMock, patch

import httpx
import pytest
from typer.testing import CliRunner

from promreader.cli.main import app

runner = CliRunner()


def http_response(status_code, payload=None):
    return MagicMock(status_code=status_code, json=MagicMock(return_value=payload or {}))


@pytest.fixture
def isolated_env(monkeypatch):
    """Restore variables the serve command exports."""
    for name in ("DUCKDB_PATH", "DUCKDB_TABLE", "PROMREADER_CONFIG"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch


class TestApiStatus:
    """Tests for api status command."""

    @patch("httpx.get")
    def test_status_ready(self, mock_get):
        """Test a running, ready server."""
        mock_get.side_effect = [
            http_response(200, {"status": "healthy", "version": "0.1.0"}),
            http_response(200, {"status": "ready"}),
        ]

        result = runner.invoke(app, ["api", "status", "--port", "9201"])

        assert result.exit_code == 0
        assert "is running" in result.stdout
        assert "Ready to serve" in result.stdout
        assert [c.args[0] for c in mock_get.call_args_list] == [
            "http://localhost:9201/health",
            "http://localhost:9201/health/ready",
        ]

    @patch("httpx.get")
    def test_status_not_ready(self, mock_get):
        """Test a server whose store reader is not initialized."""
        mock_get.side_effect = [
            http_response(200, {"status": "healthy", "version": "0.1.0"}),
            http_response(503),
        ]

        result = runner.invoke(app, ["api", "status"])

        assert result.exit_code == 1
        assert "Not ready" in result.stdout

    @patch("httpx.get")
    def test_status_unreachable(self, mock_get):
        """Test status when nothing is listening."""
        mock_get.side_effect = httpx.ConnectError("refused")

        result = runner.invoke(app, ["api", "status"])

        assert result.exit_code == 1


class TestApiServe:
    """Tests for api serve command."""

    @patch("uvicorn.run")
    def test_serve_defaults(self, mock_run, isolated_env):
        """Test uvicorn is started with settings-derived arguments."""
        isolated_env.setenv("PROMREADER_PORT", "9555")

        result = runner.invoke(app, ["api", "serve"])

        assert result.exit_code == 0
        args, kwargs = mock_run.call_args
        assert args[0] == "promreader.api.app:app"
        assert kwargs["port"] == 9555
        assert kwargs["workers"] == 1
        assert kwargs["reload"] is False

    @patch("uvicorn.run")
    def test_serve_store_overrides(self, mock_run, isolated_env, tmp_path):
        """Test store options are exported for worker processes."""
        db_path = str(tmp_path / "metrics.duckdb")

        result = runner.invoke(
            app,
            ["api", "serve", "--duckdb-path", db_path, "--table", "node_samples", "--workers", "2"],
        )

        assert result.exit_code == 0
        assert os.environ["DUCKDB_PATH"] == db_path
        assert os.environ["DUCKDB_TABLE"] == "node_samples"
        assert mock_run.call_args.kwargs["workers"] == 2
        assert "node_samples" in result.stdout

    @patch("uvicorn.run")
    def test_serve_exports_config_path(self, mock_run, isolated_env, tmp_path):
        """Test --config is handed to worker processes."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("store:\n  table: from_file\n")

        result = runner.invoke(app, ["--config", str(config_file), "api", "serve"])

        assert result.exit_code == 0
        assert os.environ["PROMREADER_CONFIG"] == str(config_file.resolve())
        assert "from_file" in result.stdout

    @patch("uvicorn.run")
    def test_serve_reload_single_worker(self, mock_run, isolated_env):
        """Test reload mode runs without worker processes."""
        result = runner.invoke(app, ["api", "serve", "--reload", "--workers", "4"])

        assert result.exit_code == 0
        assert mock_run.call_args.kwargs["reload"] is True
        assert mock_run.call_args.kwargs["workers"] is None


class TestConfigShow:
    """Tests for config show command."""

    def test_show_json(self, isolated_env, tmp_path):
        """Test effective settings grouped by section."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("read:\n  series_identity: labels\n")

        result = runner.invoke(
            app, ["--config", str(config_file), "config", "show", "--format", "json"]
        )

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert set(data) == {"server", "store", "read", "logging"}
        assert data["read"]["series_identity"] == "labels"

    def test_show_section_yaml(self, isolated_env):
        """Test a single section rendered as YAML."""
        result = runner.invoke(app, ["config", "show", "-s", "store", "-f", "yaml"])

        assert result.exit_code == 0
        assert "duckdb_path" in result.stdout
        assert "series_identity" not in result.stdout

    def test_show_table(self, isolated_env):
        """Test table output lists every section."""
        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 0
        assert "timestamp_policy" in result.stdout

    def test_unknown_section(self, isolated_env):
        """Test unknown sections are rejected."""
        result = runner.invoke(app, ["config", "show", "--section", "tenants"])

        assert result.exit_code == 1
