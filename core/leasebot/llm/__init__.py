"""LLM package exports."""

from leasebot.llm.types import (
    BlockSequence,
    GenerateParams,
    LLMResponse,
    ModelSpec,
    TextBlock,
    TextContent,
    ToolInvocationRequest,
    ToolResult,
    Turn,
)
from leasebot.llm.factory import build_client

__all__ = [
    "BlockSequence",
    "GenerateParams",
    "LLMResponse",
    "ModelSpec",
    "TextBlock",
    "TextContent",
    "ToolInvocationRequest",
    "ToolResult",
    "Turn",
    "build_client",
]
