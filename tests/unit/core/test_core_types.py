"""Unit tests for core message, tool call and result types."""

import pytest

from alfred.core.types import (
    Message,
    ModelResponse,
    Role,
    TextBlock,
    ToolCall,
    ToolCallStatus,
    ToolErrorType,
    ToolResult,
    ToolResultBlock,
    ToolUseBlock,
    content_block_from_dict,
)


class TestContentBlocks:
    """Tests for content block serialization."""

    def test_tool_result_omits_is_error_when_false(self) -> None:
        """Successful tool results do not carry an is_error flag."""
        block = ToolResultBlock(tool_use_id="t1", content="ok")
        assert block.to_dict() == {"type": "tool_result", "tool_use_id": "t1", "content": "ok"}

    def test_tool_result_marks_errors(self) -> None:
        """Failed tool results carry is_error=True."""
        block = ToolResultBlock(tool_use_id="t1", content="boom", is_error=True)
        assert block.to_dict()["is_error"] is True

    def test_parse_tool_use(self) -> None:
        """tool_use blocks parse into ToolUseBlock with their input."""
        block = content_block_from_dict(
            {"type": "tool_use", "id": "t1", "name": "bash", "input": {"command": "ls"}}
        )
        assert block == ToolUseBlock(id="t1", name="bash", input={"command": "ls"})

    def test_parse_tool_result_with_text_parts(self) -> None:
        """List-form tool_result content is flattened to text."""
        block = content_block_from_dict({
            "type": "tool_result",
            "tool_use_id": "t1",
            "content": [{"type": "text", "text": "a"}, {"type": "text", "text": "b"}],
        })
        assert isinstance(block, ToolResultBlock)
        assert block.content == "ab"

    def test_parse_unknown_type_raises(self) -> None:
        """Unknown block types are rejected."""
        with pytest.raises(ValueError, match="Unknown content block type"):
            content_block_from_dict({"type": "thinking", "thinking": "..."})


class TestMessage:
    """Tests for Message helpers."""

    def test_string_content_to_dict(self) -> None:
        """Plain text user messages serialize as a string."""
        message = Message(role=Role.USER, content="hello")
        assert message.to_dict() == {"role": "user", "content": "hello"}

    def test_block_content_to_dict(self) -> None:
        """Block content serializes as a list of blocks."""
        message = Message(
            role=Role.ASSISTANT,
            content=(TextBlock("hi"), ToolUseBlock(id="t1", name="bash")),
        )
        data = message.to_dict()
        assert data["role"] == "assistant"
        assert [b["type"] for b in data["content"]] == ["text", "tool_use"]

    def test_text_and_tool_uses(self) -> None:
        """text concatenates text blocks; tool_uses filters tool-use blocks."""
        use = ToolUseBlock(id="t1", name="read_file")
        message = Message(
            role=Role.ASSISTANT,
            content=(TextBlock("a"), use, TextBlock("b")),
        )
        assert message.text == "ab"
        assert message.tool_uses == (use,)

    def test_blocks_of_empty_string(self) -> None:
        """An empty string message has no blocks."""
        assert Message(role=Role.USER, content="").blocks == ()


class TestToolResult:
    """Tests for ToolResult."""

    def test_success_is_absence_of_error(self) -> None:
        """A result without an error is successful."""
        assert ToolResult(llm_content="done").success

    def test_failure_populates_llm_content(self) -> None:
        """failure() always gives the model an error text."""
        result = ToolResult.failure("no such file", ToolErrorType.FILE_NOT_FOUND)
        assert not result.success
        assert result.llm_content == "Error: no such file"
        assert result.return_display == "no such file"
        assert result.error is not None
        assert result.error.type == ToolErrorType.FILE_NOT_FOUND


class TestToolCall:
    """Tests for the ToolCall lifecycle."""

    def test_from_block_is_pending(self) -> None:
        """Calls built from tool_use blocks start PENDING."""
        call = ToolCall.from_block(ToolUseBlock(id="t1", name="bash", input={"command": "ls"}))
        assert call.status == ToolCallStatus.PENDING
        assert call.input == {"command": "ls"}

    def test_settle_success_and_failure(self) -> None:
        """settle() picks COMPLETED or FAILED from the result."""
        call = ToolCall(id="t1", name="bash").start()
        assert call.status == ToolCallStatus.EXECUTING

        ok = call.settle(ToolResult(llm_content="ok"))
        assert ok.status == ToolCallStatus.COMPLETED
        assert ok.result is not None

        failed = call.settle(ToolResult.failure("x", ToolErrorType.EXECUTION_FAILED))
        assert failed.status == ToolCallStatus.FAILED

    def test_settled_calls_are_final(self) -> None:
        """A settled call cannot be started or settled again."""
        settled = ToolCall(id="t1", name="bash").settle(ToolResult(llm_content="ok"))
        assert settled.is_settled
        with pytest.raises(ValueError):
            settled.start()
        with pytest.raises(ValueError):
            settled.settle(ToolResult(llm_content="again"))


class TestModelResponse:
    """Tests for ModelResponse accessors."""

    def test_text_and_tool_uses(self) -> None:
        """Accessors split text from tool calls."""
        use = ToolUseBlock(id="t1", name="bash")
        response = ModelResponse(content=(TextBlock("Let me check."), use))
        assert response.text == "Let me check."
        assert response.tool_uses == (use,)
        assert response.stop_reason is None
