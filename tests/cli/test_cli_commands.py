"""Tests for the command-line interface."""

from __future__ import annotations

from pathlib import Path

import pytest

from omnisearch_mcp.cli import build_parser, main
from omnisearch_mcp.cli import commands
from omnisearch_mcp.cli.commands import _parse_params
from omnisearch_mcp.orchestration import CheckStatus, HealthCheck


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path: Path):
    """Run without a .env file and without real provider keys."""
    monkeypatch.chdir(tmp_path)
    for key in ("TAVILY_API_KEY", "BRAVE_API_KEY", "KAGI_API_KEY", "EXA_API_KEY"):
        monkeypatch.delenv(key, raising=False)


class TestParser:
    """Tests for argument parsing."""

    def test_call_arguments(self):
        """Test repeatable URL and parameter options."""
        args = build_parser().parse_args(
            [
                "call",
                "extract",
                "-u",
                "https://a.com",
                "--url",
                "https://b.com",
                "-p",
                "engine=muriel",
                "--deadline",
                "20",
            ]
        )

        assert args.capability == "extract"
        assert args.query is None
        assert args.urls == ["https://a.com", "https://b.com"]
        assert args.params == ["engine=muriel"]
        assert args.deadline == 20.0

    def test_invalid_capability(self):
        """Test unknown capabilities are rejected by argparse."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["call", "translate", "q"])

    def test_parse_params(self):
        """Test values are read as JSON when possible."""
        params = _parse_params(["limit=5", "topic=news", 'include_domains=["a.com"]', "flag=true"])

        assert params == {
            "limit": 5,
            "topic": "news",
            "include_domains": ["a.com"],
            "flag": True,
        }

    def test_parse_params_invalid(self):
        """Test pairs without '=' are rejected."""
        with pytest.raises(ValueError, match="KEY=VALUE"):
            _parse_params(["limit"])


class TestMain:
    """Tests for main() and the command handlers."""

    def test_no_command_prints_help(self, capsys):
        """Test running without a command shows help."""
        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 0
        assert "omnisearch-mcp" in capsys.readouterr().out

    def test_missing_config_file(self, capsys):
        """Test a missing config file fails cleanly."""
        assert main(["providers", "-c", "missing.yaml"]) == 1
        assert "not found" in capsys.readouterr().out

    def test_providers_json(self, monkeypatch, capsys):
        """Test the providers listing reflects the environment."""
        monkeypatch.setenv("TAVILY_API_KEY", "tvly-cli")

        assert main(["providers", "--json", "--capability", "search"]) == 0

        out = capsys.readouterr().out
        assert '"tavily"' in out
        assert '"perplexity"' not in out

    def test_config_yaml(self, tmp_path: Path, capsys):
        """Test the effective configuration is printed."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("server:\n  transport: sse\n")

        assert main(["config", "-c", str(config_file)]) == 0

        assert "transport: sse" in capsys.readouterr().out

    def test_call_unknown_provider(self, capsys):
        """Test a failing call exits non-zero and prints the classified error."""
        assert main(["call", "search", "python", "--provider", "bing"]) == 1

        assert "provider_unknown" in capsys.readouterr().out

    def test_call_bad_param(self, capsys):
        """Test malformed -p values are reported."""
        assert main(["call", "search", "python", "-p", "limit"]) == 1

    def test_serve_overrides(self, monkeypatch):
        """Test serve passes transport overrides to the server."""
        seen = {}

        def fake_run_server(dispatcher, config):
            seen["config"] = config

        monkeypatch.setattr(commands, "run_server", fake_run_server)

        assert main(["serve", "--transport", "streamable-http", "--port", "9100"]) == 0
        assert seen["config"].transport == "streamable-http"
        assert seen["config"].port == 9100
        assert seen["config"].host == "127.0.0.1"

    def test_serve_failure_logged(self, monkeypatch, capsys):
        """Test a server that cannot start exits non-zero with the error logged."""

        def failing_run_server(dispatcher, config):
            raise OSError("address already in use")

        monkeypatch.setattr(commands, "run_server", failing_run_server)

        assert main(["serve", "--transport", "sse"]) == 1
        assert "MCP server failed" in capsys.readouterr().err

    def test_health_json(self, capsys):
        """Test the health report is printed as JSON."""
        assert main(["health", "--json"]) == 0

        out = capsys.readouterr().out
        assert '"checks"' in out
        assert '"circuit_breakers"' in out

    def test_health_unhealthy_exit_code(self, monkeypatch, capsys):
        """Test an unhealthy service exits non-zero."""
        monkeypatch.setattr(
            commands.HealthChecker, "check_providers", _failing_providers_check
        )

        assert main(["health"]) == 1
        assert "No providers enabled" in capsys.readouterr().out

    def test_readiness(self, capsys):
        """Test readiness reports whether calls can be served."""
        assert main(["health", "--readiness"]) == 0

        assert '"ready": true' in capsys.readouterr().out


def _failing_providers_check(self):
    return HealthCheck(CheckStatus.FAIL, "No providers enabled")
