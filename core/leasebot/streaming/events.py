"""Normalized events emitted to chat callers.

The vocabulary is closed and independent of the upstream provider's wire
format. Each event renders to one ``data: <json>\\n\\n`` frame; `Done` renders
to the literal ``data: [DONE]\\n\\n`` terminator.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from leasebot.toolserver.files import GeneratedFile

DONE_FRAME = b"data: [DONE]\n\n"


@dataclass(frozen=True)
class SessionInfo:
    url: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "session_info", "url": self.url}


@dataclass(frozen=True)
class ToolsUsed:
    tools: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"type": "tools_used", "tools": list(self.tools)}


@dataclass(frozen=True)
class FileAttachment:
    file: GeneratedFile

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "file",
            "fileType": self.file.kind,
            "filename": self.file.filename,
            "base64": self.file.content,
            "mimeType": self.file.mime_type,
        }


@dataclass(frozen=True)
class MessageStart:
    id: str | None

    def to_dict(self) -> dict[str, Any]:
        return {"type": "message_start", "id": self.id}


@dataclass(frozen=True)
class ContentStart:
    index: int | None

    def to_dict(self) -> dict[str, Any]:
        return {"type": "content_start", "index": self.index}


@dataclass(frozen=True)
class TextDelta:
    content: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "text", "content": self.content}


@dataclass(frozen=True)
class MessageDelta:
    stop_reason: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "message_delta", "stop_reason": self.stop_reason}


@dataclass(frozen=True)
class StreamError:
    error: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "error", "error": self.error}


@dataclass(frozen=True)
class Done:
    """Terminal event; nothing follows it on a response stream."""

    def to_dict(self) -> dict[str, Any]:
        return {"type": "done"}


NormalizedEvent = (
    SessionInfo
    | ToolsUsed
    | FileAttachment
    | MessageStart
    | ContentStart
    | TextDelta
    | MessageDelta
    | StreamError
    | Done
)


def encode_event(event: NormalizedEvent) -> bytes:
    """Render an event as one server-sent-events frame."""
    if isinstance(event, Done):
        return DONE_FRAME
    return f"data: {json.dumps(event.to_dict(), ensure_ascii=False)}\n\n".encode("utf-8")
