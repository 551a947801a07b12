"""Conversation orchestration: the bounded tool-use loop.

A round is one non-streaming model call plus the tool invocations it asks for.
While the model stops with ``tool_use``:

  1. every tool request in the response is invoked, in order, one at a time
  2. the assistant response is appended as one turn
  3. one user turn carrying the ordered tool results is appended
  4. the whole conversation is sent again

The loop is capped at `MAX_TOOL_ROUNDS` model calls. Hitting the cap is not an
error; `Resolution.exhausted` reports it. Model failures propagate to the
caller, which decides how to degrade.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from leasebot.llm.base import LLMClient
from leasebot.llm.types import BlockSequence, GenerateParams, ToolResult, Turn
from leasebot.toolserver.files import GeneratedFile
from leasebot.toolserver.invoker import ToolInvoker

logger = logging.getLogger(__name__)

MAX_TOOL_ROUNDS = 10


@dataclass(frozen=True)
class Resolution:
    """Outcome of the tool phase.

    Attributes:
        turns: Conversation to replay in streaming mode.
        tools_used: Every invoked tool name, in call order (duplicates kept).
        files: Attachments produced by tools, in call order.
        rounds: Number of model calls made.
        exhausted: True when the last allowed round still requested tools.
    """

    turns: tuple[Turn, ...]
    tools_used: tuple[str, ...] = ()
    files: tuple[GeneratedFile, ...] = ()
    rounds: int = 0
    exhausted: bool = False


@dataclass
class ConversationOrchestrator:
    """Drives the request/respond/tool-call loop against the model."""

    llm: LLMClient
    invoker: ToolInvoker
    system_prompt: str
    tools: Sequence[Mapping[str, Any]]
    max_tokens: int = 4096
    max_rounds: int = MAX_TOOL_ROUNDS
    _params: GenerateParams = field(init=False, repr=False)

    def __post_init__(self) -> None:
        # Configuration may lower the cap, never raise it.
        self.max_rounds = max(1, min(int(self.max_rounds), MAX_TOOL_ROUNDS))
        self._params = GenerateParams(
            max_tokens=self.max_tokens,
            system=self.system_prompt,
            tools=tuple(self.tools),
        )

    async def resolve(self, initial_turns: Sequence[Turn]) -> Resolution:
        """Run tool rounds until the model stops asking for tools.

        Args:
            initial_turns: Caller's conversation; never modified.

        Returns:
            Resolution with the extended conversation.

        Raises:
            LLMError: If a model call fails.
        """
        turns: list[Turn] = list(initial_turns)
        tools_used: list[str] = []
        files: list[GeneratedFile] = []
        rounds = 0

        while rounds < self.max_rounds:
            response = await self.llm.generate(turns, self._params)
            rounds += 1
            if not response.wants_tools:
                break

            requests = response.tool_requests()
            logger.info("Tool use round %d, %d tool(s) to execute", rounds, len(requests))
            if not requests:
                break

            results: list[ToolResult] = []
            for request in requests:
                tools_used.append(request.name)
                output = await self.invoker.call(request.name, request.arguments)
                results.append(ToolResult(request_id=request.id, content=output.text))
                files.extend(output.files)

            turns.append(response.as_turn())
            turns.append(Turn(role="user", content=BlockSequence(tuple(results))))
        else:
            logger.warning("Tool round limit (%d) reached; continuing with current conversation", self.max_rounds)
            return Resolution(tuple(turns), tuple(tools_used), tuple(files), rounds, exhausted=True)

        return Resolution(tuple(turns), tuple(tools_used), tuple(files), rounds, exhausted=False)
