"""Tests for the command line entry point."""

from types import SimpleNamespace
from unittest.mock import patch

import httpx
import pytest

import cli
from oauth.errors import DiscoveryError


class TestMain:
    def test_version(self, capsys):
        cli.main(["--version"])

        assert capsys.readouterr().out.strip() == "simple-oauth-mcp 1.0.0"

    def test_no_command_prints_help(self, capsys):
        cli.main([])

        assert "serve" in capsys.readouterr().out


class TestConnect:
    def test_failure_exits_nonzero(self, capsys):
        with patch("client.AuthenticatedMCPClient.authenticate_and_connect",
                   side_effect=DiscoveryError("No OAuth metadata found")), \
                patch("cli.setup_logging"):
            with pytest.raises(SystemExit) as exc_info:
                cli.main(["connect", "--server-url", "http://localhost:1"])

        assert exc_info.value.code == 1
        assert "DiscoveryError: No OAuth metadata found" in capsys.readouterr().err

    def test_prints_tool_result(self, capsys):
        result = SimpleNamespace(content=[SimpleNamespace(text="Hello Bob! (...)")])

        async def fake_call_tool(self, name, args):
            assert (name, args) == ("helloTool", {"name": "Bob"})
            return result

        with patch("client.AuthenticatedMCPClient.authenticate_and_connect"), \
                patch("client.AuthenticatedMCPClient.call_tool", fake_call_tool), \
                patch("cli.setup_logging"):
            cli.main(["connect", "--name", "Bob"])

        out = capsys.readouterr().out
        assert "[OK] Access token obtained" in out
        assert "Hello Bob! (...)" in out

    def test_tool_call_failure_exits_nonzero(self, capsys):
        async def failing_call_tool(self, name, args):
            raise httpx.ConnectError("connection refused")

        with patch("client.AuthenticatedMCPClient.authenticate_and_connect"), \
                patch("client.AuthenticatedMCPClient.call_tool", failing_call_tool), \
                patch("cli.setup_logging"):
            with pytest.raises(SystemExit) as exc_info:
                cli.main(["connect"])

        assert exc_info.value.code == 1
        assert "[X] Tool call failed: ConnectError: connection refused" in capsys.readouterr().err


class TestServe:
    def test_port_flag_overrides_config(self):
        with patch("main.run_server") as mock_run, patch("cli.setup_logging"):
            cli.main(["serve", "--port", "9999"])

        assert mock_run.call_args.args[0].mcp_port == 9999

    def test_startup_failure_exits_nonzero(self, capsys):
        with patch("main.run_server", side_effect=DiscoveryError("unreachable")), \
                patch("cli.setup_logging"):
            with pytest.raises(SystemExit) as exc_info:
                cli.main(["serve"])

        assert exc_info.value.code == 1
        assert "Server startup failed" in capsys.readouterr().err
