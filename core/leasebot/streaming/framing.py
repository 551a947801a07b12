"""Incremental line framing for ``text/event-stream`` bodies.

Upstream bytes arrive in arbitrary chunks: a chunk can end in the middle of a
line or even in the middle of a multi-byte UTF-8 character. `SSELineDecoder`
keeps the incomplete tail between calls and only yields ``data:`` payloads
from complete lines.
"""
from __future__ import annotations

import codecs
from collections.abc import Iterator


class SSELineDecoder:
    """Turns raw byte chunks into complete ``data:`` payload strings.

    ``event:`` lines, ``id:``/``retry:`` fields, comments (``:``) and blank
    lines are skipped. Both ``data: x`` and ``data:x`` are accepted, and
    ``\\r\\n`` line endings are tolerated.

    Example:
        decoder = SSELineDecoder()
        for chunk in chunks:
            for payload in decoder.feed(chunk):
                handle(payload)
        for payload in decoder.flush():
            handle(payload)
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> Iterator[str]:
        """Consume one chunk and yield the payloads of the lines it completes.

        Args:
            chunk: Raw bytes as read from the transport.

        Yields:
            Non-empty ``data:`` payload strings.
        """
        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        for line in lines:
            payload = self._payload(line)
            if payload:
                yield payload

    def flush(self) -> Iterator[str]:
        """Yield the payload of a final line that had no trailing newline."""
        tail = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        payload = self._payload(tail)
        if payload:
            yield payload

    @staticmethod
    def _payload(line: str) -> str | None:
        line = line.rstrip("\r")
        if not line.startswith("data:"):
            return None
        value = line[len("data:"):]
        if value.startswith(" "):
            value = value[1:]
        return value.strip() or None
