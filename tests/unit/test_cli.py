"""Test CLI commands."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner
from conftest import make_settings

from llm_dispatcher.cli import cli


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch("llm_dispatcher.cli.setup_logging"):
        yield


@pytest.fixture
def mock_only_settings():
    with patch("llm_dispatcher.cli.get_settings", return_value=make_settings(mock_provider_enabled=True)):
        yield


class TestCLICommands:
    """Test CLI commands"""

    def test_version_command(self):
        with patch("llm_dispatcher.cli.get_version", return_value="1.0.0"):
            runner = CliRunner()
            result = runner.invoke(cli, ["version"])

            assert result.exit_code == 0
            assert "1.0.0" in result.output

    def test_version_json_format(self):
        with patch("llm_dispatcher.cli.get_version", return_value="1.0.0"):
            runner = CliRunner()
            result = runner.invoke(cli, ["version", "--format", "json"])

            assert result.exit_code == 0
            assert json.loads(result.output)["version"] == "1.0.0"

    def test_help_command(self):
        result = CliRunner().invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "Usage:" in result.output
        assert "ask" in result.output

    def test_serve_command(self):
        with patch("llm_dispatcher.cli.run_server") as mock_run:
            result = CliRunner().invoke(cli, ["serve", "--port", "3000", "--reload"])

            assert result.exit_code == 0
            mock_run.assert_called_once_with(None, 3000, True)

    def test_ask_command(self, mock_only_settings):
        result = CliRunner().invoke(cli, ["ask", "hello there"])

        assert result.exit_code == 0
        assert "Mock response to: hello there" in result.output

    def test_ask_json(self, mock_only_settings):
        result = CliRunner().invoke(cli, ["ask", "hello", "--json", "--temperature", "0.2"])

        assert result.exit_code == 0
        assert '"provider": "mock"' in result.output
        assert '"model_used": "mock-echo"' in result.output

    def test_ask_without_providers_exits_nonzero(self):
        with patch("llm_dispatcher.cli.get_settings", return_value=make_settings()):
            result = CliRunner().invoke(cli, ["ask", "hello"])

        assert result.exit_code == 2
        assert "temporarily unavailable" in result.output

    def test_ask_rejects_blank_prompt(self, mock_only_settings):
        result = CliRunner().invoke(cli, ["ask", "   "])

        assert result.exit_code == 2
        assert "prompt" in result.output

    def test_providers_command(self, mock_only_settings):
        result = CliRunner().invoke(cli, ["providers", "--probe"])

        assert result.exit_code == 0
        assert "mock" in result.output
        assert "probe=ok" in result.output
        assert "groq" in result.output
        assert "missing credential" in result.output
