"""Tests for the catcache command line."""

import pytest
import uvicorn
from typer.testing import CliRunner

from catcache import __version__, cli as cli_module
from catcache.cli import cli

runner = CliRunner()


@pytest.fixture
def served(monkeypatch):
    """Capture uvicorn.run calls instead of starting a server."""
    calls = []

    def fake_run(app, **kwargs):
        calls.append((app, kwargs))

    monkeypatch.setattr(cli_module.uvicorn, "run", fake_run)
    monkeypatch.delenv("CATCACHE_UPSTREAM_URL", raising=False)
    monkeypatch.delenv("CATCACHE_LOG_LEVEL", raising=False)
    return calls


class TestRequiredFlags:
    def test_missing_host(self, served, tmp_path):
        result = runner.invoke(cli, ["--port", "3000", "--cache", str(tmp_path)])
        assert result.exit_code == 1
        assert "Please, specify server host" in result.output
        assert served == []

    def test_missing_port(self, served, tmp_path):
        result = runner.invoke(cli, ["--host", "127.0.0.1", "--cache", str(tmp_path)])
        assert result.exit_code == 1
        assert "Please, specify server port" in result.output

    def test_missing_cache(self, served):
        result = runner.invoke(cli, ["--host", "127.0.0.1", "--port", "3000"])
        assert result.exit_code == 1
        assert "Please, specify cache directory" in result.output

    def test_nothing_given_reports_host_first(self, served):
        result = runner.invoke(cli, [])
        assert result.exit_code == 1
        assert "Please, specify server host" in result.output
        assert "server port" not in result.output

    def test_non_numeric_port_is_usage_error(self, served, tmp_path):
        result = runner.invoke(cli, ["-h", "127.0.0.1", "-p", "http", "-c", str(tmp_path)])
        assert result.exit_code == 2
        assert served == []

    def test_out_of_range_port(self, served, tmp_path):
        result = runner.invoke(cli, ["-h", "127.0.0.1", "-p", "70000", "-c", str(tmp_path)])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output


class TestServe:
    def test_runs_app_with_flags(self, served, tmp_path):
        cache_dir = tmp_path / "nested" / "cache"

        result = runner.invoke(cli, ["-h", "0.0.0.0", "-p", "3000", "-c", str(cache_dir)])

        assert result.exit_code == 0, result.output
        assert cache_dir.is_dir()
        (app, kwargs) = served[0]
        assert kwargs["host"] == "0.0.0.0"
        assert kwargs["port"] == 3000
        assert app.state.settings.cache_dir == cache_dir.resolve()
        assert app.state.settings.upstream_url == "https://http.cat/"

    def test_upstream_from_environment(self, served, tmp_path, monkeypatch):
        monkeypatch.setenv("CATCACHE_UPSTREAM_URL", "http://mirror.test/cats")

        runner.invoke(cli, ["-h", "127.0.0.1", "-p", "3000", "-c", str(tmp_path)])

        (app, _) = served[0]
        assert app.state.settings.upstream_url == "http://mirror.test/cats/"

    def test_upstream_flag_wins_over_environment(self, served, tmp_path, monkeypatch):
        monkeypatch.setenv("CATCACHE_UPSTREAM_URL", "http://mirror.test/cats")

        runner.invoke(
            cli,
            ["-h", "127.0.0.1", "-p", "3000", "-c", str(tmp_path), "--upstream", "http://other.test/"],
        )

        (app, _) = served[0]
        assert app.state.settings.upstream_url == "http://other.test/"

    def test_unknown_log_level(self, served, tmp_path):
        result = runner.invoke(
            cli, ["-h", "127.0.0.1", "-p", "3000", "-c", str(tmp_path), "--log-level", "chatty"]
        )
        assert result.exit_code == 1
        assert "Unknown log level" in result.output

    @pytest.mark.parametrize("level", ["WARN", "FATAL", "NOTSET"])
    def test_stdlib_only_log_levels_are_rejected(self, served, tmp_path, level):
        result = runner.invoke(
            cli, ["-h", "127.0.0.1", "-p", "3000", "-c", str(tmp_path), "--log-level", level]
        )
        assert result.exit_code == 1
        assert "Unknown log level" in result.output
        assert served == []

    @pytest.mark.parametrize("level", ["WARNING", "debug", "trace", "Critical"])
    def test_log_level_is_accepted_by_uvicorn_config(self, tmp_path, monkeypatch, level):
        configs = []

        def build_config(app, **kwargs):
            configs.append(uvicorn.Config(app, **kwargs))

        monkeypatch.setattr(cli_module.uvicorn, "run", build_config)

        result = runner.invoke(
            cli, ["-h", "127.0.0.1", "-p", "3000", "-c", str(tmp_path), "--log-level", level]
        )

        assert result.exit_code == 0, result.output
        assert configs[0].log_level == level.lower()

    def test_version(self, served):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output
