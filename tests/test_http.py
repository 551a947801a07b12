import asyncio
import json
from contextlib import asynccontextmanager
from types import SimpleNamespace

import httpx

from leasebot.chat import MISSING_KEY_MESSAGE, ChatService
from leasebot.config import Config
from leasebot.entrypoints.http import create_app
from leasebot.llm.base import LLMClient
from leasebot.llm.exceptions import LLMAuthError, LLMProviderError
from leasebot.llm.providers.anthropic_client import parse_message
from leasebot.llm.types import ModelSpec, ToolResult

SERVER_URL = "https://tools.example/sse"


def frame(obj):
    return f"data: {json.dumps(obj)}\n\n".encode("utf-8")


def text_stream(text):
    return [
        frame({"type": "message_start", "message": {"id": "msg_s"}}),
        frame({"type": "content_block_start", "index": 0, "content_block": {"type": "text", "text": ""}}),
        frame({"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": text}}),
        frame({"type": "message_delta", "delta": {"stop_reason": "end_turn"}}),
        frame({"type": "message_stop"}),
    ]


class FakeLLM(LLMClient):
    def __init__(self, responses=(), chunks=(), stream_error=None):
        super().__init__(ModelSpec(provider="anthropic", model="test-model"))
        self.responses = list(responses)
        self.chunks = list(chunks)
        self.stream_error = stream_error
        self.generate_calls = []
        self.stream_calls = []
        self.closed = False

    async def generate(self, turns, params):
        self.generate_calls.append(list(turns))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    @asynccontextmanager
    async def stream(self, turns, params):
        self.stream_calls.append((list(turns), params))
        if self.stream_error is not None:
            raise self.stream_error

        async def body():
            for chunk in self.chunks:
                yield chunk

        yield body()

    async def close(self):
        self.closed = True


class FakeToolSession:
    def __init__(self, replies):
        self.replies = replies
        self.calls = []

    async def call_tool(self, name, arguments):
        self.calls.append((name, arguments))
        return SimpleNamespace(content=[SimpleNamespace(type="text", text=self.replies[name])], isError=False)


class FakeSessions:
    def __init__(self, session=None):
        self.session = session
        self.acquired = 0
        self.closed = False

    async def acquire(self):
        self.acquired += 1
        return self.session

    async def invalidate(self, session=None):
        return None

    async def close(self):
        self.closed = True


def make_service(llm, sessions, api_key="sk-test"):
    config = Config(ANTHROPIC_API_KEY=api_key, MCP_SERVER_URL=SERVER_URL)
    return ChatService(config, llm, sessions)


def post(app, body, path="/api/chat", method="POST"):
    async def run():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            content = body if isinstance(body, (bytes, str)) else json.dumps(body)
            return await client.request(method, path, content=content)

    return asyncio.run(run())


def sse_events(response):
    events = []
    for block in response.text.split("\n\n"):
        if not block.startswith("data: "):
            continue
        payload = block[len("data: "):]
        events.append(payload if payload == "[DONE]" else json.loads(payload))
    return events


def test_missing_key_returns_500_without_network_calls():
    llm = FakeLLM()
    sessions = FakeSessions()
    app = create_app(make_service(llm, sessions, api_key=""))

    response = post(app, {"messages": [{"role": "user", "content": "hi"}]})

    assert response.status_code == 500
    assert response.json() == {"error": MISSING_KEY_MESSAGE}
    assert llm.generate_calls == []
    assert llm.stream_calls == []
    assert sessions.acquired == 0


def test_credit_score_question_runs_one_tool_and_streams_answer():
    llm = FakeLLM(
        responses=[
            parse_message(
                {
                    "content": [
                        {
                            "type": "tool_use",
                            "id": "tu_1",
                            "name": "query_database",
                            "input": {"query": "SELECT AVG(credit_score) FROM prospects"},
                        }
                    ],
                    "stop_reason": "tool_use",
                }
            ),
            parse_message({"content": [{"type": "text", "text": "702"}], "stop_reason": "end_turn"}),
        ],
        chunks=text_stream("The average credit score is 702."),
    )
    tool_session = FakeToolSession({"query_database": '[{"avg_credit_score": 702}]'})
    app = create_app(make_service(llm, FakeSessions(tool_session)))

    response = post(app, {"messages": [{"role": "user", "content": "What's the average credit score?"}]})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    events = sse_events(response)
    assert events[0] == {"type": "session_info", "url": SERVER_URL}
    assert events[1] == {"type": "tools_used", "tools": ["query_database"]}
    assert {"type": "text", "content": "The average credit score is 702."} in events
    assert events[-1] == "[DONE]"
    assert events.count("[DONE]") == 1

    assert len(tool_session.calls) == 1
    streamed_turns, params = llm.stream_calls[0]
    assert streamed_turns[-1].content.blocks == (ToolResult("tu_1", '[{"avg_credit_score": 702}]'),)
    assert params.tool_choice == {"type": "none"}


def test_tool_phase_failure_falls_back_to_original_messages():
    llm = FakeLLM(
        responses=[LLMProviderError("API error: 500", status_code=500)],
        chunks=text_stream("Hello!"),
    )
    app = create_app(make_service(llm, FakeSessions()))

    response = post(app, {"messages": [{"role": "user", "content": "hi"}]})

    assert response.status_code == 200
    events = sse_events(response)
    assert not any(isinstance(e, dict) and e["type"] == "tools_used" for e in events)
    assert {"type": "text", "content": "Hello!"} in events
    streamed_turns, params = llm.stream_calls[0]
    assert [t.to_wire() for t in streamed_turns] == [{"role": "user", "content": "hi"}]
    assert params.tools == ()


def test_streaming_rejection_is_reported_with_upstream_status():
    llm = FakeLLM(
        responses=[parse_message({"content": [{"type": "text", "text": "hi"}], "stop_reason": "end_turn"})],
        stream_error=LLMAuthError("API error: 401", status_code=401),
    )
    app = create_app(make_service(llm, FakeSessions()))

    response = post(app, {"messages": [{"role": "user", "content": "hi"}]})

    assert response.status_code == 401
    assert response.json() == {"error": "API error: 401"}


def test_invalid_body_returns_400():
    app = create_app(make_service(FakeLLM(), FakeSessions()))

    assert post(app, b"not json").status_code == 400
    assert post(app, {"messages": []}).status_code == 400
    assert post(app, {"messages": [{"role": "system", "content": "x"}]}).status_code == 400


def test_block_content_is_accepted():
    llm = FakeLLM(
        responses=[parse_message({"content": [{"type": "text", "text": "ok"}], "stop_reason": "end_turn"})],
        chunks=text_stream("ok"),
    )
    app = create_app(make_service(llm, FakeSessions()))
    body = {
        "messages": [
            {"role": "user", "content": [{"type": "text", "text": "hello"}]},
            {"role": "assistant", "content": "hi"},
            {"role": "user", "content": "and?"},
        ]
    }

    response = post(app, body)

    assert response.status_code == 200
    assert [t.to_wire() for t in llm.generate_calls[0]] == body["messages"]


def test_healthz_and_unknown_routes():
    app = create_app(make_service(FakeLLM(), FakeSessions()))

    health = post(app, b"", path="/healthz", method="GET")
    assert health.status_code == 200
    assert health.text == "ok"

    assert post(app, b"", path="/nope", method="GET").status_code == 404
    assert post(app, b"", path="/api/chat", method="GET").status_code == 405
