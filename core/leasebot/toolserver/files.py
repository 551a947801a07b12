"""Generated file attachments extracted from tool results.

Tools such as ``create_market_report`` return charts and documents as MCP
content parts. Image parts and embedded binary resources are turned into
`GeneratedFile` objects, which the stream normalizer emits as ``file``
events ahead of the model's text.
"""
from __future__ import annotations

import mimetypes
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Literal
from urllib.parse import urlparse

FileKind = Literal["image", "pdf", "document"]

_DOCUMENT_MIME_TYPES = frozenset(
    {
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.oasis.opendocument.text",
        "application/rtf",
    }
)


@dataclass(frozen=True)
class GeneratedFile:
    """A binary attachment produced by a tool.

    Attributes:
        kind: "image", "pdf" or "document".
        filename: Suggested download name.
        content: Base64-encoded bytes.
        mime_type: MIME type reported by the tool server.
    """

    kind: FileKind
    filename: str
    content: str
    mime_type: str


def field_of(obj: Any, name: str) -> Any:
    """Read ``name`` from a mapping or an attribute-style object."""
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def classify_mime(mime_type: str) -> FileKind | None:
    """Return the attachment kind for a MIME type, or None if unsupported."""
    mime = (mime_type or "").split(";", 1)[0].strip().lower()
    if mime.startswith("image/"):
        return "image"
    if mime == "application/pdf":
        return "pdf"
    if mime in _DOCUMENT_MIME_TYPES:
        return "document"
    return None


def _filename(tool_name: str, index: int, mime_type: str, uri: Any) -> str:
    if uri:
        name = urlparse(str(uri)).path.rsplit("/", 1)[-1]
        if name:
            return name
    ext = mimetypes.guess_extension(mime_type.split(";", 1)[0].strip()) or ""
    return f"{tool_name}-{index}{ext}"


def extract_files(tool_name: str, parts: Iterable[Any]) -> list[GeneratedFile]:
    """Collect file attachments from MCP content parts.

    Args:
        tool_name: Name of the tool that produced the parts (used for filenames).
        parts: ``CallToolResult.content`` items (pydantic models or dicts).

    Returns:
        Attachments in the order they appear.
    """
    files: list[GeneratedFile] = []
    for part in parts:
        part_type = field_of(part, "type")
        if part_type == "image":
            data = field_of(part, "data")
            mime = str(field_of(part, "mimeType") or "image/png")
            uri = None
        elif part_type == "resource":
            resource = field_of(part, "resource")
            data = field_of(resource, "blob")
            mime = str(field_of(resource, "mimeType") or "application/octet-stream")
            uri = field_of(resource, "uri")
        else:
            continue

        kind = classify_mime(mime)
        if not isinstance(data, str) or not data or kind is None:
            continue
        files.append(
            GeneratedFile(
                kind=kind,
                filename=_filename(tool_name, len(files) + 1, mime, uri),
                content=data,
                mime_type=mime,
            )
        )
    return files
