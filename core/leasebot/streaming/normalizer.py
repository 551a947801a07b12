"""Stream normalizer: upstream event stream -> normalized caller events.

Translation table (upstream ``type`` -> emitted event):

    message_start                         -> MessageStart
    content_block_start (text block)      -> ContentStart
    content_block_delta (text_delta)      -> TextDelta
    message_delta (with stop_reason)      -> MessageDelta
    message_stop                          -> Done (stream ends)
    error                                 -> StreamError
    content_block_stop, ping, other       -> dropped
    unparseable payload                   -> dropped
"""
from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator, Mapping, Sequence
from typing import Any

from leasebot.llm.base import LLMClient
from leasebot.llm.types import GenerateParams, Turn
from leasebot.streaming.events import (
    ContentStart,
    Done,
    FileAttachment,
    MessageDelta,
    MessageStart,
    NormalizedEvent,
    SessionInfo,
    StreamError,
    TextDelta,
    ToolsUsed,
)
from leasebot.streaming.framing import SSELineDecoder
from leasebot.toolserver.files import GeneratedFile

logger = logging.getLogger(__name__)

STREAM_READ_FAILED = "Stream reading failed"


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def translate(data: Mapping[str, Any]) -> NormalizedEvent | None:
    """Translate one upstream event object.

    Args:
        data: Decoded ``data:`` payload.

    Returns:
        The normalized event, or None when the upstream event is suppressed.
    """
    kind = data.get("type")
    if kind == "message_start":
        return MessageStart(id=_mapping(data.get("message")).get("id"))
    if kind == "content_block_start":
        if _mapping(data.get("content_block")).get("type") == "text":
            return ContentStart(index=data.get("index"))
        return None
    if kind == "content_block_delta":
        delta = _mapping(data.get("delta"))
        if delta.get("type") == "text_delta":
            return TextDelta(content=str(delta.get("text", "")))
        return None
    if kind == "message_delta":
        stop_reason = _mapping(data.get("delta")).get("stop_reason")
        return MessageDelta(stop_reason=str(stop_reason)) if stop_reason else None
    if kind == "message_stop":
        return Done()
    if kind == "error":
        return StreamError(error=str(_mapping(data.get("error")).get("message") or "Unknown error"))
    return None


def decode_payload(payload: str) -> NormalizedEvent | None:
    """Parse and translate one ``data:`` payload; malformed payloads yield None."""
    try:
        data = json.loads(payload)
    except ValueError:
        logger.debug("Dropping unparseable stream payload: %.200s", payload)
        return None
    if not isinstance(data, Mapping):
        return None
    return translate(data)


async def _payloads(chunks: AsyncIterator[bytes]) -> AsyncIterator[str]:
    decoder = SSELineDecoder()
    async for chunk in chunks:
        for payload in decoder.feed(chunk):
            yield payload
    for payload in decoder.flush():
        yield payload


class StreamNormalizer:
    """Replays the final conversation in streaming mode and relays normalized events."""

    def __init__(
        self,
        llm: LLMClient,
        *,
        server_url: str,
        system_prompt: str,
        tools: Sequence[Mapping[str, Any]],
        max_tokens: int = 4096,
    ) -> None:
        """Initialize the normalizer.

        Args:
            llm: Client used for the streaming call.
            server_url: Tool server endpoint announced in the ``session_info`` event.
            system_prompt: System instructions for the streaming call.
            tools: Tool catalog, declared only when the conversation carries tool blocks.
            max_tokens: ``max_tokens`` for the streaming call.
        """
        self._llm = llm
        self._server_url = server_url
        self._system_prompt = system_prompt
        self._tools = tuple(tools)
        self._max_tokens = max_tokens

    def params_for(self, turns: Sequence[Turn]) -> GenerateParams:
        """Return streaming parameters for a conversation.

        Tool blocks in the history require the catalog to be declared; tool use
        itself is disabled so the reply is text only.
        """
        if any(t.has_tool_blocks() for t in turns):
            return GenerateParams(
                max_tokens=self._max_tokens,
                system=self._system_prompt,
                tools=self._tools,
                tool_choice={"type": "none"},
            )
        return GenerateParams(max_tokens=self._max_tokens, system=self._system_prompt)

    async def relay(
        self,
        final_turns: Sequence[Turn],
        tools_used: Sequence[str] = (),
        files: Sequence[GeneratedFile] = (),
    ) -> AsyncIterator[NormalizedEvent]:
        """Stream the final reply as normalized events.

        The upstream call is opened before anything is yielded, so a
        non-success status surfaces as an `LLMError` from the first
        ``__anext__`` while the caller can still answer with a JSON error.

        Args:
            final_turns: Conversation to replay.
            tools_used: Tool names invoked during the tool phase.
            files: Attachments produced during the tool phase.

        Yields:
            SessionInfo, then ToolsUsed (if any), then one FileAttachment per
            file, then the translated upstream events. Ends with exactly one
            Done, except after a read error, which ends with StreamError.
        """
        async with self._llm.stream(final_turns, self.params_for(final_turns)) as chunks:
            yield SessionInfo(url=self._server_url)
            if tools_used:
                yield ToolsUsed(tools=tuple(tools_used))
            for file in files:
                yield FileAttachment(file=file)

            payloads = _payloads(chunks)
            try:
                while True:
                    try:
                        payload = await anext(payloads)
                    except StopAsyncIteration:
                        break
                    except Exception:  # pylint: disable=broad-exception-caught
                        logger.exception("Stream reading error")
                        yield StreamError(error=STREAM_READ_FAILED)
                        return

                    event = decode_payload(payload)
                    if event is None:
                        continue
                    yield event
                    if isinstance(event, Done):
                        return
            finally:
                await payloads.aclose()

            yield Done()
