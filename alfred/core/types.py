"""Core types for Alfred.

This module defines the fundamental data structures shared by the conversation
engine, the tool runtime and the model transport: content blocks, messages,
tool calls, tool results and model responses. All dataclasses are frozen for
immutability; state transitions produce new instances.
"""

import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class Role(Enum):
    """Message role in a conversation."""

    USER = "user"
    ASSISTANT = "assistant"


# --- Content Blocks ---


@dataclass(frozen=True)
class ContentBlock:
    """Base class for all content blocks."""

    def to_dict(self) -> dict[str, Any]:
        raise NotImplementedError


@dataclass(frozen=True)
class TextBlock(ContentBlock):
    """A block of plain text.

    Attributes:
        text: The text content.
    """

    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(frozen=True)
class ToolUseBlock(ContentBlock):
    """A tool invocation requested by the model.

    Attributes:
        id: Unique identifier the model assigned to this invocation.
        name: Name of the tool to execute.
        input: Arguments for the tool.
    """

    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"type": "tool_use", "id": self.id, "name": self.name, "input": self.input}


@dataclass(frozen=True)
class ToolResultBlock(ContentBlock):
    """The result of a tool invocation, sent back to the model.

    Attributes:
        tool_use_id: ID of the ToolUseBlock this result answers.
        content: Text fed back to the model.
        is_error: True if the tool failed.
    """

    tool_use_id: str
    content: str
    is_error: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": "tool_result",
            "tool_use_id": self.tool_use_id,
            "content": self.content,
        }
        if self.is_error:
            data["is_error"] = True
        return data


def content_block_from_dict(data: dict[str, Any]) -> ContentBlock:
    """Parse a content block from its API representation.

    Raises:
        ValueError: If the block type is unknown.
    """
    block_type = data.get("type")
    if block_type == "text":
        return TextBlock(text=data.get("text", ""))
    if block_type == "tool_use":
        return ToolUseBlock(
            id=data.get("id", ""),
            name=data.get("name", ""),
            input=dict(data.get("input") or {}),
        )
    if block_type == "tool_result":
        content = data.get("content", "")
        if isinstance(content, list):
            content = "".join(
                part.get("text", "") for part in content if isinstance(part, dict)
            )
        return ToolResultBlock(
            tool_use_id=data.get("tool_use_id", ""),
            content=content,
            is_error=bool(data.get("is_error", False)),
        )
    raise ValueError(f"Unknown content block type: {block_type!r}")


MessageContent = str | tuple[ContentBlock, ...]


@dataclass(frozen=True)
class Message:
    """A message in a conversation.

    Assistant messages always carry a tuple of content blocks. User messages
    may carry plain text or blocks (tool results).

    Attributes:
        role: The role of the message sender.
        content: Plain text or a tuple of content blocks.
        timestamp: Unix timestamp when the message was created.
    """

    role: Role
    content: MessageContent
    timestamp: float = field(default_factory=time.time)

    @property
    def blocks(self) -> tuple[ContentBlock, ...]:
        """Content as blocks (plain text becomes a single TextBlock)."""
        if isinstance(self.content, str):
            return (TextBlock(self.content),) if self.content else ()
        return self.content

    @property
    def text(self) -> str:
        """Concatenated text of all text blocks."""
        if isinstance(self.content, str):
            return self.content
        return "".join(b.text for b in self.content if isinstance(b, TextBlock))

    @property
    def tool_uses(self) -> tuple[ToolUseBlock, ...]:
        if isinstance(self.content, str):
            return ()
        return tuple(b for b in self.content if isinstance(b, ToolUseBlock))

    def to_dict(self) -> dict[str, Any]:
        """Convert to the model API message format."""
        if isinstance(self.content, str):
            return {"role": self.role.value, "content": self.content}
        return {
            "role": self.role.value,
            "content": [block.to_dict() for block in self.content],
        }


# --- Tools ---


class ToolErrorType(Enum):
    """Classification of tool failures."""

    INVALID_PARAMS = "invalid_params"
    EXECUTION_FAILED = "execution_failed"
    TOOL_NOT_FOUND = "tool_not_found"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    PERMISSION_DENIED = "permission_denied"
    FILE_NOT_FOUND = "file_not_found"
    UNKNOWN = "unknown"


class ToolKind(Enum):
    """What a tool does, used for display and grouping."""

    READ = "read"
    EDIT = "edit"
    EXECUTE = "execute"
    THINK = "think"
    FETCH = "fetch"
    OTHER = "other"


@dataclass(frozen=True)
class ToolError:
    """Structured tool failure.

    Attributes:
        message: Human-readable error message.
        type: Error classification.
    """

    message: str
    type: ToolErrorType = ToolErrorType.UNKNOWN


@dataclass(frozen=True)
class ToolResult:
    """Result of executing a tool.

    llm_content is always populated (also on failure) because it is fed back
    to the model. error is set if and only if the tool failed.

    Attributes:
        llm_content: Text sent back to the model.
        return_display: Text or structured data for the UI.
        error: Structured error if the tool failed.
    """

    llm_content: str = ""
    return_display: str | dict[str, Any] = ""
    error: ToolError | None = None

    @property
    def success(self) -> bool:
        """Return True if the tool execution succeeded (no error)."""
        return self.error is None

    @classmethod
    def failure(
        cls,
        message: str,
        error_type: ToolErrorType,
        display: str | None = None,
    ) -> "ToolResult":
        """Build a failed result whose llm_content carries the error message."""
        return cls(
            llm_content=f"Error: {message}",
            return_display=display if display is not None else message,
            error=ToolError(message=message, type=error_type),
        )


class ToolCallStatus(Enum):
    """Lifecycle state of a tool call."""

    PENDING = "pending"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class ToolCall:
    """A request to execute a tool, tracked through its lifecycle.

    Created PENDING when the model yields a tool_use block, moved to EXECUTING
    and then settled as COMPLETED or FAILED. Settled calls are final.

    Attributes:
        id: Unique identifier for this tool call.
        name: Name of the tool to execute.
        input: Arguments to pass to the tool.
        status: Current lifecycle state.
        result: The ToolResult once settled.
    """

    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)
    status: ToolCallStatus = ToolCallStatus.PENDING
    result: ToolResult | None = None

    @classmethod
    def from_block(cls, block: ToolUseBlock) -> "ToolCall":
        return cls(id=block.id, name=block.name, input=dict(block.input))

    @property
    def is_settled(self) -> bool:
        return self.status in (ToolCallStatus.COMPLETED, ToolCallStatus.FAILED)

    def start(self) -> "ToolCall":
        """Return this call in the EXECUTING state."""
        if self.is_settled:
            raise ValueError(f"Tool call {self.id} already settled")
        return replace(self, status=ToolCallStatus.EXECUTING)

    def settle(self, result: ToolResult) -> "ToolCall":
        """Return this call settled with the given result."""
        if self.is_settled:
            raise ValueError(f"Tool call {self.id} already settled")
        status = ToolCallStatus.COMPLETED if result.success else ToolCallStatus.FAILED
        return replace(self, status=status, result=result)


# --- Model responses ---


class StopReason(Enum):
    """Why the model stopped generating."""

    END_TURN = "end_turn"
    TOOL_USE = "tool_use"
    MAX_TOKENS = "max_tokens"
    STOP_SEQUENCE = "stop_sequence"


@dataclass(frozen=True)
class Usage:
    """Token accounting for one model call."""

    input_tokens: int = 0
    output_tokens: int = 0


@dataclass(frozen=True)
class ModelResponse:
    """A complete, non-streamed model response.

    Attributes:
        content: Content blocks returned by the model.
        stop_reason: Why generation ended (None if the API omitted it).
        usage: Token usage for the call.
    """

    content: tuple[ContentBlock, ...]
    stop_reason: StopReason | None = None
    usage: Usage = field(default_factory=Usage)

    @property
    def text(self) -> str:
        return "".join(b.text for b in self.content if isinstance(b, TextBlock))

    @property
    def tool_uses(self) -> tuple[ToolUseBlock, ...]:
        return tuple(b for b in self.content if isinstance(b, ToolUseBlock))
