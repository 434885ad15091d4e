"""Tests for the icd-mcp command line entry point."""

import pytest

from icd_mcp.cli import _arguments, main, parse_args


@pytest.fixture
def no_credentials(monkeypatch):
    monkeypatch.delenv("WHO_CLIENT_ID", raising=False)
    monkeypatch.delenv("WHO_CLIENT_SECRET", raising=False)


def test_arguments_drop_unset_options():
    args = parse_args(["search", "--query", "cholera", "-n", "3"])
    assert _arguments(args) == {"action": "search", "query": "cholera", "max_results": 3}


def test_help_needs_no_credentials(no_credentials, capsys):
    assert main(["help"]) == 0
    assert "# ICD MCP Server" in capsys.readouterr().out


def test_missing_credentials_exit_code(no_credentials, capsys):
    assert main(["lookup", "--code", "1A00"]) == 1
    assert "credentials not configured" in capsys.readouterr().err


def test_rejects_unknown_action():
    with pytest.raises(SystemExit):
        parse_args(["delete"])
