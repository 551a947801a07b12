import pytest

from leasebot.config import Config
from leasebot.llm.factory import model_spec_from_config


def test_defaults():
    config = Config()
    assert config.ANTHROPIC_API_KEY == ""
    assert config.MCP_SERVER_URL == "https://tenant-leasing-mcp.onrender.com/sse"
    assert config.MCP_TRANSPORT == "sse"
    assert config.max_tokens == 4096
    assert config.max_tool_rounds == 10
    assert config.mcp_headers is None
    assert config.mcp_stdio_args == []


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-live")
    monkeypatch.setenv("LEASEBOT_LLM_MODEL", "claude-other")
    monkeypatch.setenv("LEASEBOT_LLM_MAX_TOKENS", "1024")
    monkeypatch.setenv("LEASEBOT_MAX_TOOL_ROUNDS", "3")
    monkeypatch.setenv("LEASEBOT_MCP_STDIO_ARGS", "-m tenant_mcp --db 'leases demo.db'")

    config = Config()

    assert config.ANTHROPIC_API_KEY == "sk-live"
    assert config.max_tokens == 1024
    assert config.max_tool_rounds == 3
    assert config.mcp_stdio_args == ["-m", "tenant_mcp", "--db", "leases demo.db"]
    spec = model_spec_from_config(config)
    assert spec.provider == "anthropic"
    assert spec.model == "claude-other"


def test_headers_must_be_a_json_object(monkeypatch):
    monkeypatch.setenv("LEASEBOT_MCP_HEADERS_JSON", '["not", "an", "object"]')
    with pytest.raises(ValueError):
        _ = Config().mcp_headers


def test_config_is_frozen():
    config = Config()
    with pytest.raises(AttributeError):
        config.LLM_MODEL = "other"  # type: ignore[misc]
