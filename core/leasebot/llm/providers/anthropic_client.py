"""Anthropic Messages API client over httpx."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any

import httpx

from leasebot.llm.base import LLMClient
from leasebot.llm.exceptions import (
    LLMAuthError,
    LLMConfigError,
    LLMProviderError,
    LLMRateLimitError,
    LLMTimeoutError,
)
from leasebot.llm.types import (
    GenerateParams,
    LLMResponse,
    ModelSpec,
    TokenUsage,
    Turn,
    block_from_wire,
    turns_to_wire,
)

logger = logging.getLogger(__name__)

DEFAULT_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"


def _status_error(status: int, body: str) -> LLMProviderError:
    """Map a non-success HTTP status to the matching exception.

    Args:
        status: Upstream HTTP status code.
        body: Response body text, logged for diagnosis.

    Returns:
        Exception instance to raise.
    """
    logger.error("Anthropic API error %s: %s", status, body[:500])
    message = f"API error: {status}"
    if status in (401, 403):
        return LLMAuthError(message, status_code=status)
    if status == 429:
        return LLMRateLimitError(message, status_code=status)
    return LLMProviderError(message, status_code=status)


def _parse_usage(raw: Any) -> TokenUsage | None:
    """Best-effort extraction of token usage."""
    if not isinstance(raw, dict):
        return None
    input_tokens = raw.get("input_tokens")
    output_tokens = raw.get("output_tokens")
    total = None
    if isinstance(input_tokens, int) and isinstance(output_tokens, int):
        total = input_tokens + output_tokens
    return TokenUsage(input_tokens=input_tokens, output_tokens=output_tokens, total_tokens=total)


def parse_message(data: Any) -> LLMResponse:
    """Parse a Messages API JSON object into an LLMResponse.

    Args:
        data: Decoded response body.

    Returns:
        Normalized response.

    Raises:
        LLMProviderError: If the payload is not a message object.
    """
    if not isinstance(data, dict) or not isinstance(data.get("content"), list):
        raise LLMProviderError("Malformed response from Anthropic API")
    blocks = tuple(block_from_wire(b) for b in data["content"] if isinstance(b, dict))
    return LLMResponse(
        content=blocks,
        stop_reason=data.get("stop_reason"),
        id=data.get("id"),
        usage=_parse_usage(data.get("usage")),
    )


class AnthropicLLMClient(LLMClient):
    """Anthropic provider client.

    Talks to the Messages endpoint directly with `httpx.AsyncClient`. The HTTP
    client is created lazily and reused across requests so the connection
    pool is shared.
    """

    def __init__(
        self,
        model_spec: ModelSpec,
        api_key: str,
        *,
        timeout_s: float = 120.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            model_spec: Model specification; ``base_url`` overrides the endpoint URL.
            api_key: Anthropic API key.
            timeout_s: Request timeout in seconds.
            http_client: Optional pre-built client (tests inject a MockTransport).
        """
        super().__init__(model_spec)
        self._api_key = api_key
        self._timeout_s = timeout_s
        self._client = http_client
        self._lock = asyncio.Lock()

    @property
    def url(self) -> str:
        return self.model_spec.base_url or DEFAULT_URL

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Lazily initialize and return the shared HTTP client.

        Raises:
            LLMConfigError: If the API key is missing.
        """
        if not self._api_key:
            raise LLMConfigError("ANTHROPIC_API_KEY is not set in the environment.")
        if self._client is not None:
            return self._client
        async with self._lock:
            if self._client is None:
                self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout_s))
        return self._client

    def _headers(self) -> dict[str, str]:
        return {
            "content-type": "application/json",
            "x-api-key": self._api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

    def build_payload(self, turns: Sequence[Turn], params: GenerateParams, *, stream: bool) -> dict[str, Any]:
        """Build the request body.

        Args:
            turns: Conversation to send.
            params: Generation parameters.
            stream: Whether to request an event stream.

        Returns:
            JSON-serializable request body.
        """
        payload: dict[str, Any] = {
            "model": self.model_spec.model,
            "max_tokens": params.max_tokens,
            "messages": turns_to_wire(turns),
        }
        if params.system:
            payload["system"] = params.system
        if params.tools:
            payload["tools"] = [dict(t) for t in params.tools]
            if params.tool_choice is not None:
                payload["tool_choice"] = dict(params.tool_choice)
        if self.model_spec.extra:
            payload.update(self.model_spec.extra)
        if stream:
            payload["stream"] = True
        return payload

    async def generate(self, turns: Sequence[Turn], params: GenerateParams) -> LLMResponse:
        """Send a non-streaming request.

        Raises:
            LLMAuthError: On 401/403.
            LLMRateLimitError: On 429.
            LLMTimeoutError: On request timeouts.
            LLMProviderError: On other failures or malformed JSON.
        """
        client = await self._get_client()
        payload = self.build_payload(turns, params, stream=False)
        try:
            response = await client.post(self.url, json=payload, headers=self._headers())
        except httpx.TimeoutException as exc:
            raise LLMTimeoutError(f"Anthropic request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise LLMProviderError(f"Anthropic request failed: {exc}") from exc

        if response.status_code >= 400:
            raise _status_error(response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as exc:
            raise LLMProviderError("Anthropic API returned invalid JSON") from exc
        return parse_message(data)

    @asynccontextmanager
    async def stream(self, turns: Sequence[Turn], params: GenerateParams) -> AsyncIterator[AsyncIterator[bytes]]:
        """Open a streaming request and yield the raw body byte iterator.

        Raises:
            LLMAuthError: On 401/403.
            LLMRateLimitError: On 429.
            LLMTimeoutError: If connecting times out.
            LLMProviderError: On other failures.
        """
        client = await self._get_client()
        payload = self.build_payload(turns, params, stream=True)
        request = client.build_request("POST", self.url, json=payload, headers=self._headers())
        try:
            response = await client.send(request, stream=True)
        except httpx.TimeoutException as exc:
            raise LLMTimeoutError(f"Anthropic request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise LLMProviderError(f"Anthropic request failed: {exc}") from exc

        try:
            if response.status_code >= 400:
                body = await response.aread()
                raise _status_error(response.status_code, body.decode("utf-8", errors="replace"))
            yield response.aiter_bytes()
        finally:
            await response.aclose()
