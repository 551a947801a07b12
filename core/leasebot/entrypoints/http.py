# Licensed to the Apache Software Foundation (ASF) under one
# or more contributor license agreements.  See the NOTICE file
# distributed with this work for additional information
# regarding copyright ownership.  The ASF licenses this file
# to you under the Apache License, Version 2.0 (the
# "License"); you may not use this file except in compliance
# with the License.  You may obtain a copy of the License at
#
#   http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing,
# software distributed under the License is distributed on an
# "AS IS" BASIS, WITHOUT WARRANTIES OR CONDITIONS OF ANY
# KIND, either express or implied.  See the License for the
# specific language governing permissions and limitations
# under the License.
#
# Authors
# - Leasebot contributors, 2026

"""
Leasebot HTTP entrypoint (ASGI).

Routes:
  - GET  /healthz   -> "ok"
  - POST /api/chat  -> chat turn, answered as ``text/event-stream``

Request body: ``{"messages": [{"role": "user"|"assistant", "content": ...}]}``.

Errors detected before streaming starts are answered with a JSON body
``{"error": "..."}`` and status 400 (bad body), 401 (credential rejected),
429 (rate limited) or 500 (missing credential, other upstream failure). Once
the first event is produced, the response is committed as an event stream and
later failures are reported as ``error`` events.

Run:
  uvicorn leasebot.entrypoints.http:app --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, MutableMapping
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

from leasebot.chat import ChatService, create_chat_service
from leasebot.llm.exceptions import LLMError
from leasebot.llm.types import Turn
from leasebot.streaming.events import NormalizedEvent, StreamError, encode_event

logger = logging.getLogger(__name__)

# ASGI typing helpers
Scope = MutableMapping[str, Any]
Receive = Callable[[], Awaitable[MutableMapping[str, Any]]]
Send = Callable[[MutableMapping[str, Any]], Awaitable[None]]
ASGIApp = Callable[[Scope, Receive, Send], Awaitable[None]]

_SSE_HEADERS = [
    (b"content-type", b"text/event-stream"),
    (b"cache-control", b"no-cache, no-transform"),
    (b"connection", b"keep-alive"),
    (b"x-accel-buffering", b"no"),
]


class InboundMessage(BaseModel):
    """One turn as posted by the chat UI."""

    role: Literal["user", "assistant"]
    content: str | list[dict[str, Any]]


class ChatRequest(BaseModel):
    """Body of ``POST /api/chat``."""

    messages: list[InboundMessage] = Field(min_length=1)


async def _read_body(receive: Receive) -> bytes:
    """Read the full request body from the ASGI receive channel."""
    chunks: list[bytes] = []
    while True:
        message = await receive()
        if message.get("type") == "http.disconnect":
            break
        chunks.append(message.get("body", b""))
        if not message.get("more_body", False):
            break
    return b"".join(chunks)


async def _send_plain_text(send: Send, status: int, body: str) -> None:
    """Send a simple plain-text HTTP response.

    Args:
        send: ASGI send callable.
        status: HTTP status code.
        body: Response body text.
    """
    await send(
        {
            "type": "http.response.start",
            "status": status,
            "headers": [(b"content-type", b"text/plain; charset=utf-8")],
        }
    )
    await send({"type": "http.response.body", "body": body.encode("utf-8")})


async def _send_json_error(send: Send, status: int, message: str) -> None:
    """Send ``{"error": message}`` with the given status."""
    await send(
        {
            "type": "http.response.start",
            "status": status,
            "headers": [(b"content-type", b"application/json")],
        }
    )
    await send({"type": "http.response.body", "body": json.dumps({"error": message}).encode("utf-8")})


def parse_chat_request(body: bytes) -> list[Turn]:
    """Validate a chat request body and convert it to turns.

    Raises:
        ValueError: If the body is not a valid chat request (pydantic's
            ValidationError is a ValueError).
    """
    request = ChatRequest.model_validate_json(body or b"{}")
    return [Turn.from_wire(m.model_dump()) for m in request.messages]


async def _stream_events(send: Send, first: NormalizedEvent, events: AsyncIterator[NormalizedEvent]) -> None:
    """Commit the event-stream response and forward every event."""
    await send({"type": "http.response.start", "status": 200, "headers": _SSE_HEADERS})
    await send({"type": "http.response.body", "body": encode_event(first), "more_body": True})
    try:
        async for event in events:
            await send({"type": "http.response.body", "body": encode_event(event), "more_body": True})
    except Exception:  # pylint: disable=broad-exception-caught
        logger.exception("Chat stream failed after the response started")
        await send(
            {
                "type": "http.response.body",
                "body": encode_event(StreamError(error="Stream reading failed")),
                "more_body": True,
            }
        )
    await send({"type": "http.response.body", "body": b"", "more_body": False})


async def handle_chat(service: ChatService, receive: Receive, send: Send) -> None:
    """Handle ``POST /api/chat``.

    Args:
        service: Chat service shared by all requests.
        receive: ASGI receive callable.
        send: ASGI send callable.
    """
    body = await _read_body(receive)
    try:
        turns = parse_chat_request(body)
    except ValueError as exc:
        logger.info("Rejected chat request: %s", exc)
        await _send_json_error(send, 400, "Invalid request body: expected {messages: [{role, content}]}")
        return

    events = service.stream(turns)
    try:
        try:
            first = await anext(events)
        except LLMError as exc:
            logger.error("Chat request failed before streaming: %s", exc)
            await _send_json_error(send, exc.http_status, str(exc))
            return
        except StopAsyncIteration:
            await _send_json_error(send, 500, "Failed to process request")
            return
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("Chat API error")
            await _send_json_error(send, 500, "Failed to process request")
            return

        await _stream_events(send, first, events)
    finally:
        await events.aclose()


def create_app(service: ChatService | None = None) -> ASGIApp:
    """Create the ASGI application.

    Args:
        service: Chat service to use; built from environment configuration
            when omitted.

    Returns:
        ASGI callable.
    """
    chat_service = service or create_chat_service()

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI application entrypoint.

        Args:
            scope: ASGI scope.
            receive: ASGI receive callable.
            send: ASGI send callable.
        """
        scope_type = scope.get("type")

        # Support ASGI lifespan events so the tool session is closed on shutdown.
        if scope_type == "lifespan":
            while True:
                message = await receive()
                msg_type = message.get("type")

                if msg_type == "lifespan.startup":
                    await send({"type": "lifespan.startup.complete"})
                elif msg_type == "lifespan.shutdown":
                    await chat_service.close()
                    await send({"type": "lifespan.shutdown.complete"})
                    return

        if scope_type != "http":
            # Only HTTP and lifespan are supported here.
            return

        path = scope.get("path", "")
        method = scope.get("method", "GET")

        if path == "/healthz":
            await _send_plain_text(send, 200, "ok")
            return

        if path != "/api/chat":
            await _send_plain_text(send, 404, "not found")
            return

        if method != "POST":
            await _send_json_error(send, 405, "Method not allowed")
            return

        await handle_chat(chat_service, receive, send)

    return app


app = create_app()
