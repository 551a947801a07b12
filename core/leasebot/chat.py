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

"""Chat service: tool phase, graceful degradation and the streaming phase.

This module wires the process-wide resources (LLM client, tool session
manager) into one object that the HTTP entrypoint and the CLI share.
"""
from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Sequence

from leasebot.config import Config
from leasebot.llm.base import LLMClient
from leasebot.llm.exceptions import LLMConfigError
from leasebot.llm.factory import build_client, model_spec_from_config
from leasebot.llm.types import Turn
from leasebot.orchestrator import ConversationOrchestrator, Resolution
from leasebot.prompts.templates import get_system_prompt
from leasebot.streaming.events import NormalizedEvent
from leasebot.streaming.normalizer import StreamNormalizer
from leasebot.tools.catalog import get_definitions
from leasebot.toolserver.invoker import ToolInvoker
from leasebot.toolserver.session import ToolServerConfig, ToolSessionManager

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = "ANTHROPIC_API_KEY not configured. Set it in the environment before starting leasebot."


class ChatService:
    """Runs one chat request end to end.

    The tool session manager is shared by every request handled by this
    service; the conversation of each request is private to that request.
    """

    def __init__(
        self,
        config: Config,
        llm: LLMClient,
        sessions: ToolSessionManager,
    ) -> None:
        """Initialize the service.

        Args:
            config: Runtime configuration.
            llm: Model client shared by the tool phase and the streaming phase.
            sessions: Tool session manager shared across requests.
        """
        self.config = config
        self.llm = llm
        self.sessions = sessions

        system_prompt = get_system_prompt(config.MCP_SERVER_URL)
        tools = get_definitions()
        self.orchestrator = ConversationOrchestrator(
            llm=llm,
            invoker=ToolInvoker(sessions),
            system_prompt=system_prompt,
            tools=tools,
            max_tokens=config.max_tokens,
            max_rounds=config.max_tool_rounds,
        )
        self.normalizer = StreamNormalizer(
            llm,
            server_url=config.MCP_SERVER_URL,
            system_prompt=system_prompt,
            tools=tools,
            max_tokens=config.max_tokens,
        )

    def check_configured(self) -> None:
        """Fail fast, before any network call, when the credential is missing.

        Raises:
            LLMConfigError: If ``ANTHROPIC_API_KEY`` is not set.
        """
        if not self.config.ANTHROPIC_API_KEY:
            raise LLMConfigError(MISSING_KEY_MESSAGE)

    async def prepare(self, turns: Sequence[Turn]) -> Resolution:
        """Run the tool phase, falling back to the original turns on failure.

        Args:
            turns: Caller's conversation.

        Returns:
            The orchestrator's Resolution, or one holding the unmodified turns
            (no tools, no files) when the tool phase failed.
        """
        try:
            resolution = await self.orchestrator.resolve(turns)
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("Error processing tools; continuing with original messages")
            return Resolution(turns=tuple(turns))
        if resolution.tools_used:
            logger.info(
                "Tool phase finished after %d round(s): %s", resolution.rounds, ", ".join(resolution.tools_used)
            )
        return resolution

    async def stream(self, turns: Sequence[Turn]) -> AsyncIterator[NormalizedEvent]:
        """Run the whole request and yield normalized events.

        Raises:
            LLMConfigError: If the credential is missing (before any network call).
            LLMError: If the streaming call is rejected before the first event.
        """
        self.check_configured()
        resolution = await self.prepare(turns)
        async for event in self.normalizer.relay(resolution.turns, resolution.tools_used, resolution.files):
            yield event

    async def close(self) -> None:
        """Release the tool session and the HTTP client (best-effort)."""
        try:
            await self.sessions.close()
        except Exception:  # pylint: disable=broad-exception-caught
            logger.warning("Failed to close tool session", exc_info=True)
        try:
            await self.llm.close()
        except Exception:  # pylint: disable=broad-exception-caught
            logger.warning("Failed to close LLM client", exc_info=True)


def create_chat_service(config: Config | None = None) -> ChatService:
    """Build a ChatService from configuration.

    No network connection is opened here; the tool session and the HTTP
    client are both created lazily on first use.
    """
    config = config or Config()
    llm = build_client(model_spec_from_config(config), config.ANTHROPIC_API_KEY, timeout_s=config.llm_timeout)
    sessions = ToolSessionManager(ToolServerConfig.from_config(config))
    return ChatService(config, llm, sessions)
