import pytest

from leasebot.llm.types import (
    BlockSequence,
    OpaqueBlock,
    TextBlock,
    TextContent,
    ToolInvocationRequest,
    ToolResult,
    Turn,
    block_from_wire,
    turns_to_wire,
)


def test_text_turn_round_trips():
    turn = Turn.from_wire({"role": "user", "content": "hello"})
    assert turn == Turn(role="user", content=TextContent("hello"))
    assert turn.to_wire() == {"role": "user", "content": "hello"}
    assert not turn.has_tool_blocks()


def test_block_turn_keeps_order_and_tool_blocks():
    wire = {
        "role": "assistant",
        "content": [
            {"type": "text", "text": "Let me look."},
            {"type": "tool_use", "id": "tu_1", "name": "get_schema", "input": {}},
        ],
    }
    turn = Turn.from_wire(wire)
    assert isinstance(turn.content, BlockSequence)
    assert turn.content.blocks == (TextBlock("Let me look."), ToolInvocationRequest("tu_1", "get_schema", {}))
    assert turn.has_tool_blocks()
    assert turn.to_wire() == wire


def test_structured_tool_result_is_kept_verbatim():
    block = {"type": "tool_result", "tool_use_id": "tu_1", "content": [{"type": "text", "text": "ok"}]}
    parsed = block_from_wire(block)
    assert isinstance(parsed, OpaqueBlock)
    assert parsed.to_wire() == block
    assert Turn(role="user", content=BlockSequence((parsed,))).has_tool_blocks()


def test_tool_result_wire_shape():
    assert ToolResult("tu_9", "42").to_wire() == {"type": "tool_result", "tool_use_id": "tu_9", "content": "42"}


@pytest.mark.parametrize(
    "wire",
    [
        {"role": "system", "content": "x"},
        {"role": "user", "content": 42},
        {"role": "user", "content": ["not a block"]},
    ],
)
def test_invalid_turns_are_rejected(wire):
    with pytest.raises(ValueError):
        Turn.from_wire(wire)


def test_turns_to_wire():
    assert turns_to_wire([Turn.user("a"), Turn.assistant("b")]) == [
        {"role": "user", "content": "a"},
        {"role": "assistant", "content": "b"},
    ]
