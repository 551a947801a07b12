"""Leasebot configuration.

This module defines a frozen dataclass `Config` that centralizes runtime
configuration for the chat bridge. Values come from environment variables,
falling back to the optional ``[tool.leasebot]`` table in `pyproject.toml`
and then to built-in defaults.
"""
from __future__ import annotations

import json
import os
import shlex
import sys
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


def load_leasebot_config() -> dict[str, Any]:
    """Load Leasebot configuration from `pyproject.toml`.

    Returns:
        Dictionary of configuration values under `tool.leasebot`, or an empty dict if the file does not exist.
    """
    pyproject = Path(__file__).resolve().parents[2] / "pyproject.toml"
    if not pyproject.exists():
        return {}
    with pyproject.open("rb") as f:
        data = tomllib.load(f)
    return data.get("tool", {}).get("leasebot", {})


_CONFIG = load_leasebot_config()

DEFAULT_MCP_SERVER_URL = "https://tenant-leasing-mcp.onrender.com/sse"
DEFAULT_ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
DEFAULT_MODEL = "claude-sonnet-4-20250514"


def _env(name: str, default: Any = "") -> Any:
    """Return a factory reading ``LEASEBOT_<NAME>`` with a pyproject fallback.

    Args:
        name: Setting name without prefix (e.g. "MCP_SERVER_URL").
        default: Value used when neither the environment nor pyproject sets it.

    Returns:
        Zero-argument callable usable as a dataclass ``default_factory``.
    """
    def _read() -> Any:
        value = os.getenv(f"LEASEBOT_{name}")
        if value is not None:
            return value
        return _CONFIG.get(name.lower(), default)

    return _read


@dataclass(frozen=True)
class Config:  # pylint: disable=too-many-instance-attributes
    """Configuration for the Leasebot chat bridge.

    Instances read the environment when they are created, so tests can
    monkeypatch variables and build a fresh `Config()`.

    Attributes:
        SERVER_NAME (str): Client name announced to the MCP server.
        SERVER_VERSION (str): Client version announced to the MCP server.
        ANTHROPIC_API_KEY (str): Credential for the Messages endpoint (unprefixed env var).
        ANTHROPIC_API_URL (str): Messages endpoint URL.
        LLM_PROVIDER (str): Provider id used by the client factory.
        LLM_MODEL (str): Model string sent with every request.
        LLM_MAX_TOKENS (str): ``max_tokens`` sent with every request.
        LLM_TIMEOUT_S (str): HTTP timeout for LLM calls, in seconds.
        MCP_SERVER_URL (str): Tool server endpoint (SSE or streamable HTTP).
        MCP_TRANSPORT (str): "sse", "http" or "stdio".
        MCP_HEADERS_JSON (str): Optional JSON object of extra HTTP headers for the tool server.
        MCP_TIMEOUT_S (str): Tool server HTTP timeout, in seconds.
        MCP_CALL_TIMEOUT_S (str): Read timeout for a single tool call, in seconds.
        MCP_STDIO_COMMAND (str): Executable for the stdio transport.
        MCP_STDIO_ARGS (str): Shell-style argument string for the stdio transport.
        MAX_TOOL_ROUNDS (str): Upper bound on non-streaming LLM calls per request.
        LOG_LEVEL (str): Logging level name for the CLI and server.
    """

    SERVER_NAME: str = field(default_factory=_env("SERVER_NAME", "leasebot-webui-client"))
    SERVER_VERSION: str = field(default_factory=_env("SERVER_VERSION", "1.0.0"))

    # The credential keeps the vendor's conventional variable name.
    ANTHROPIC_API_KEY: str = field(default_factory=lambda: os.getenv("ANTHROPIC_API_KEY", ""))
    ANTHROPIC_API_URL: str = field(default_factory=_env("ANTHROPIC_API_URL", DEFAULT_ANTHROPIC_API_URL))

    LLM_PROVIDER: str = field(default_factory=_env("LLM_PROVIDER", "anthropic"))
    LLM_MODEL: str = field(default_factory=_env("LLM_MODEL", DEFAULT_MODEL))
    LLM_MAX_TOKENS: str = field(default_factory=_env("LLM_MAX_TOKENS", "4096"))
    LLM_TIMEOUT_S: str = field(default_factory=_env("LLM_TIMEOUT_S", "120"))

    MCP_SERVER_URL: str = field(default_factory=_env("MCP_SERVER_URL", DEFAULT_MCP_SERVER_URL))
    MCP_TRANSPORT: str = field(default_factory=_env("MCP_TRANSPORT", "sse"))
    MCP_HEADERS_JSON: str = field(default_factory=_env("MCP_HEADERS_JSON", ""))
    MCP_TIMEOUT_S: str = field(default_factory=_env("MCP_TIMEOUT_S", "30"))
    MCP_CALL_TIMEOUT_S: str = field(default_factory=_env("MCP_CALL_TIMEOUT_S", "120"))
    MCP_STDIO_COMMAND: str = field(default_factory=_env("MCP_STDIO_COMMAND", sys.executable))
    MCP_STDIO_ARGS: str = field(default_factory=_env("MCP_STDIO_ARGS", ""))

    MAX_TOOL_ROUNDS: str = field(default_factory=_env("MAX_TOOL_ROUNDS", "10"))
    LOG_LEVEL: str = field(default_factory=_env("LOG_LEVEL", "INFO"))

    @property
    def max_tokens(self) -> int:
        """Return ``LLM_MAX_TOKENS`` as an int."""
        return int(self.LLM_MAX_TOKENS)

    @property
    def llm_timeout(self) -> float:
        """Return ``LLM_TIMEOUT_S`` as a float."""
        return float(self.LLM_TIMEOUT_S)

    @property
    def mcp_timeout(self) -> float:
        """Return ``MCP_TIMEOUT_S`` as a float."""
        return float(self.MCP_TIMEOUT_S)

    @property
    def mcp_call_timeout(self) -> float:
        """Return ``MCP_CALL_TIMEOUT_S`` as a float."""
        return float(self.MCP_CALL_TIMEOUT_S)

    @property
    def max_tool_rounds(self) -> int:
        """Return ``MAX_TOOL_ROUNDS`` as an int."""
        return int(self.MAX_TOOL_ROUNDS)

    @property
    def mcp_headers(self) -> dict[str, str] | None:
        """Parse ``MCP_HEADERS_JSON`` into a header mapping.

        Returns:
            Header dict, or None when unset.

        Raises:
            ValueError: If the value is not a JSON object.
        """
        raw = str(self.MCP_HEADERS_JSON or "").strip()
        if not raw:
            return None
        parsed = json.loads(raw)
        if not isinstance(parsed, dict):
            raise ValueError("LEASEBOT_MCP_HEADERS_JSON must be a JSON object.")
        return {str(k): str(v) for k, v in parsed.items()}

    @property
    def mcp_stdio_args(self) -> list[str]:
        """Split ``MCP_STDIO_ARGS`` into an argv list."""
        return shlex.split(str(self.MCP_STDIO_ARGS or ""))
