"""Base classes for LLM provider clients."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from contextlib import AbstractAsyncContextManager

from leasebot.llm.types import GenerateParams, LLMResponse, ModelSpec, Turn


class LLMClient(ABC):
    """
    Abstract base for provider clients.

    Implementations should:
    - Accept normalized turns and return a normalized response.
    - Expose the raw event-stream bytes for streaming calls, leaving the
      translation to the stream normalizer.
    - Raise only `leasebot.llm.exceptions.LLMError` subclasses.
    """

    def __init__(self, model_spec: ModelSpec) -> None:
        """Initialize the client with a model spec.

        Args:
            model_spec: Model specification for this client.
        """
        self._model_spec = model_spec

    async def close(self) -> None:
        """Close any underlying network resources."""
        return

    @property
    def model_spec(self) -> ModelSpec:
        """Return the model spec used by this client."""
        return self._model_spec

    @abstractmethod
    async def generate(self, turns: Sequence[Turn], params: GenerateParams) -> LLMResponse:
        """Generate a complete (non-streaming) response.

        Args:
            turns: Conversation so far.
            params: Generation parameters.

        Returns:
            A normalized LLMResponse.
        """
        raise NotImplementedError

    @abstractmethod
    def stream(
        self,
        turns: Sequence[Turn],
        params: GenerateParams,
    ) -> AbstractAsyncContextManager[AsyncIterator[bytes]]:
        """Open a streaming call.

        Entering the context performs the request and raises on a non-success
        status; the yielded iterator produces raw body chunks as they arrive.

        Args:
            turns: Conversation to replay.
            params: Generation parameters.
        """
        raise NotImplementedError
