"""Normalized types for LLM interactions.

A conversation is an ordered tuple of `Turn` objects. Turn content is a tagged
variant: either `TextContent` or a `BlockSequence` of content blocks. The
``to_wire``/``from_wire`` helpers convert to and from the Messages API JSON
shape.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal

Role = Literal["user", "assistant"]

STOP_TOOL_USE = "tool_use"


@dataclass(frozen=True)
class TextBlock:
    """Plain text emitted by the model (or sent by the user)."""

    text: str

    def to_wire(self) -> dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(frozen=True)
class ToolInvocationRequest:
    """A request from the model to run a named tool.

    The provider issues ``id``; replies are correlated by it.
    """

    id: str
    name: str
    arguments: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Read-only private copy.
        object.__setattr__(self, "arguments", MappingProxyType(dict(self.arguments)))

    def to_wire(self) -> dict[str, Any]:
        return {"type": "tool_use", "id": self.id, "name": self.name, "input": dict(self.arguments)}


@dataclass(frozen=True)
class ToolResult:
    """The textual result of one tool invocation."""

    request_id: str
    content: str

    def to_wire(self) -> dict[str, Any]:
        return {"type": "tool_result", "tool_use_id": self.request_id, "content": self.content}


@dataclass(frozen=True)
class OpaqueBlock:
    """Any other provider block, replayed unchanged."""

    data: Mapping[str, Any]

    @property
    def type(self) -> str:
        return str(self.data.get("type", ""))

    def to_wire(self) -> dict[str, Any]:
        return dict(self.data)


ContentBlock = TextBlock | ToolInvocationRequest | ToolResult | OpaqueBlock


@dataclass(frozen=True)
class TextContent:
    """Turn content made of a single text string."""

    text: str


@dataclass(frozen=True)
class BlockSequence:
    """Turn content made of ordered content blocks."""

    blocks: tuple[ContentBlock, ...] = ()

    def requests(self) -> tuple[ToolInvocationRequest, ...]:
        """Return the tool-invocation requests, in order."""
        return tuple(b for b in self.blocks if isinstance(b, ToolInvocationRequest))


TurnContent = TextContent | BlockSequence


def block_from_wire(data: Mapping[str, Any]) -> ContentBlock:
    """Convert one wire content block into a typed block.

    Args:
        data: Block mapping as found in a Messages API payload.

    Returns:
        Typed content block; unknown types become `OpaqueBlock`.
    """
    block_type = data.get("type")
    if block_type == "text":
        return TextBlock(text=str(data.get("text", "")))
    if block_type == "tool_use":
        args = data.get("input")
        return ToolInvocationRequest(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            arguments=args if isinstance(args, Mapping) else {},
        )
    if block_type == "tool_result":
        content = data.get("content", "")
        if not isinstance(content, str):
            # Structured results are kept verbatim.
            return OpaqueBlock(data=dict(data))
        return ToolResult(request_id=str(data.get("tool_use_id", "")), content=content)
    return OpaqueBlock(data=dict(data))


@dataclass(frozen=True)
class Turn:
    """One conversation entry."""

    role: Role
    content: TurnContent

    @classmethod
    def user(cls, text: str) -> "Turn":
        return cls(role="user", content=TextContent(text))

    @classmethod
    def assistant(cls, text: str) -> "Turn":
        return cls(role="assistant", content=TextContent(text))

    @classmethod
    def from_wire(cls, data: Mapping[str, Any]) -> "Turn":
        """Build a turn from a ``{role, content}`` mapping.

        Args:
            data: Mapping with ``role`` and ``content`` (string or block list).

        Returns:
            Parsed Turn.

        Raises:
            ValueError: If the role or content shape is not supported.
        """
        role = data.get("role")
        if role not in ("user", "assistant"):
            raise ValueError(f"Unsupported role: {role!r}")
        content = data.get("content", "")
        if isinstance(content, str):
            return cls(role=role, content=TextContent(content))
        if isinstance(content, Sequence):
            blocks = []
            for item in content:
                if not isinstance(item, Mapping):
                    raise ValueError("Content blocks must be objects.")
                blocks.append(block_from_wire(item))
            return cls(role=role, content=BlockSequence(tuple(blocks)))
        raise ValueError("Turn content must be a string or a list of blocks.")

    def to_wire(self) -> dict[str, Any]:
        """Return the Messages API representation of this turn."""
        if isinstance(self.content, TextContent):
            return {"role": self.role, "content": self.content.text}
        return {"role": self.role, "content": [b.to_wire() for b in self.content.blocks]}

    def has_tool_blocks(self) -> bool:
        """Return True if the turn carries tool requests or results."""
        if isinstance(self.content, TextContent):
            return False
        return any(
            isinstance(b, (ToolInvocationRequest, ToolResult))
            or (isinstance(b, OpaqueBlock) and b.type in ("tool_use", "tool_result"))
            for b in self.content.blocks
        )


def turns_to_wire(turns: Sequence[Turn]) -> list[dict[str, Any]]:
    """Serialize a conversation for the Messages API."""
    return [t.to_wire() for t in turns]


@dataclass(frozen=True)
class TokenUsage:
    """Normalized token usage (may be partially filled depending on provider)."""

    input_tokens: int | None = None
    output_tokens: int | None = None
    total_tokens: int | None = None


@dataclass(frozen=True)
class LLMResponse:
    """Normalized non-streaming model response."""

    content: tuple[ContentBlock, ...]
    stop_reason: str | None = None
    id: str | None = None
    usage: TokenUsage | None = None

    @property
    def wants_tools(self) -> bool:
        return self.stop_reason == STOP_TOOL_USE

    def tool_requests(self) -> tuple[ToolInvocationRequest, ...]:
        return BlockSequence(self.content).requests()

    def as_turn(self) -> Turn:
        """Return the response as an assistant turn, blocks unchanged."""
        return Turn(role="assistant", content=BlockSequence(self.content))


@dataclass(frozen=True)
class ModelSpec:
    """Concrete model configuration."""

    provider: str                 # "anthropic"
    model: str                    # e.g. "claude-sonnet-4-20250514"
    base_url: str | None = None
    extra: dict[str, Any] | None = None  # provider-specific knobs (optional)


@dataclass(frozen=True)
class GenerateParams:
    """Generation parameters."""

    max_tokens: int = 4096
    system: str = ""
    tools: tuple[Mapping[str, Any], ...] = ()
    tool_choice: Mapping[str, Any] | None = None
