"""Exceptions raised by the tool-server layer."""

from __future__ import annotations


class ToolConnectionError(ConnectionError):
    """Raised when the tool-server transport or MCP handshake fails.

    The session manager stays unconnected after this error, so the next
    `acquire()` starts a fresh handshake.
    """


class ToolInvocationError(RuntimeError):
    """Raised inside the invoker when a tool call returns an unusable result.

    The invoker converts it to tool-result text; it never leaves the invoker.
    """
