"""Tool invocation over the shared tool-server session.

Tool failures are data, not control flow: every failure is turned into an
``Error: Failed to call tool "<name>". <detail>`` string that is still sent
back to the model as the tool result, so the model can recover or apologize.
"""
from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from leasebot.toolserver.exceptions import ToolInvocationError
from leasebot.toolserver.files import GeneratedFile, extract_files, field_of
from leasebot.toolserver.session import ToolSession, ToolSessionManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolOutput:
    """Normalized outcome of one tool call."""

    text: str
    files: tuple[GeneratedFile, ...] = ()
    failed: bool = False


def _jsonable(obj: Any) -> Any:
    """Convert MCP result objects (pydantic models) into JSON-ready values."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json", exclude_none=True)
    if isinstance(obj, Mapping):
        return {str(k): _jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_jsonable(v) for v in obj]
    return obj


def result_text(result: Any) -> str:
    """Reduce a tool result to text.

    The first ``text`` part wins. Without one, the content list (or the whole
    result when it has no content list) is serialized to JSON.

    Args:
        result: ``CallToolResult`` or an equivalent mapping.

    Returns:
        Text for the tool-result block.

    Raises:
        ToolInvocationError: If the server returned nothing at all.
    """
    if result is None:
        raise ToolInvocationError("Tool server returned an empty response")
    content = field_of(result, "content")
    if isinstance(content, list):
        for part in content:
            if field_of(part, "type") == "text":
                text = field_of(part, "text")
                if isinstance(text, str):
                    return text
        return json.dumps(_jsonable(content), default=str)
    return json.dumps(_jsonable(result), default=str)


def error_text(name: str, exc: BaseException) -> str:
    """Format the tool-result text for a failed call."""
    detail = str(exc) or "Unknown error"
    return f'Error: Failed to call tool "{name}". {detail}'


class ToolInvoker:
    """Runs tool calls through a `ToolSessionManager`."""

    def __init__(self, sessions: ToolSessionManager) -> None:
        self._sessions = sessions

    async def invoke(self, name: str, arguments: Mapping[str, Any]) -> str:
        """Call a tool and return its result text (never raises for tool failures)."""
        output = await self.call(name, arguments)
        return output.text

    async def call(self, name: str, arguments: Mapping[str, Any]) -> ToolOutput:
        """Call a tool and return its text plus any generated files.

        On any failure the session is reset, so the next call re-handshakes,
        and the error is returned as text.

        Args:
            name: Tool name.
            arguments: Tool arguments.

        Returns:
            ToolOutput; ``failed`` is True when the text is an error message.
        """
        logger.info("Calling tool: %s", name)
        session: ToolSession | None = None
        try:
            session = await self._sessions.acquire()
            result = await session.call_tool(name, dict(arguments))
            text = result_text(result)
            content = field_of(result, "content")
            files = tuple(extract_files(name, content)) if isinstance(content, list) else ()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.exception("Error calling tool %s", name)
            if session is not None:
                await self._sessions.invalidate(session)
            return ToolOutput(text=error_text(name, exc), failed=True)

        if field_of(result, "isError"):
            logger.warning("Tool %s reported an error: %s", name, text[:200])
        else:
            logger.info("Tool %s completed", name)
        return ToolOutput(text=text, files=files)
