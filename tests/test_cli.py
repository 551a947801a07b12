import json

from leasebot import cli as leasebot_cli
from leasebot.chat import MISSING_KEY_MESSAGE


def test_cli_tools_list_json(capsys):
    # leasebot_cli.main may either return an int or raise SystemExit (when called as __main__).
    try:
        result = leasebot_cli.main(["tools", "list", "--json"])
        assert result == 0
    except SystemExit as se:
        assert se.code == 0

    out = capsys.readouterr().out
    parsed = json.loads(out)
    names = [item["name"] for item in parsed]
    assert "query_database" in names
    assert "create_market_report" in names
    assert len(parsed) == 8
    assert all(item["description"] for item in parsed)


def test_cli_tools_list_plain(capsys):
    assert leasebot_cli.main(["tools", "list"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0].startswith("get_schema")
    assert len(lines) == 8


def test_cli_tools_list_remote_reports_connection_failure(monkeypatch, capsys):
    from leasebot.toolserver.exceptions import ToolConnectionError

    async def boom(config):
        raise ToolConnectionError("handshake refused")

    monkeypatch.setattr("leasebot.cli._remote_tools", boom)

    assert leasebot_cli.main(["tools", "list", "--remote"]) == 1
    assert "handshake refused" in capsys.readouterr().err


def test_cli_chat_without_key_fails_fast(capsys):
    assert leasebot_cli.main(["chat", "What's the average credit score?"]) == 1
    assert MISSING_KEY_MESSAGE in capsys.readouterr().err
