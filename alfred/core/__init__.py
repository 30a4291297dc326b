"""Core types and interfaces."""

from alfred.core.cancel import CancellationToken
from alfred.core.errors import (
    AlfredError,
    ApiError,
    ConfigError,
    LoadError,
    NetworkError,
    ProviderError,
    StructuredError,
    UnauthorizedError,
    to_structured_error,
)
from alfred.core.interfaces import ModelClient
from alfred.core.types import (
    ContentBlock,
    Message,
    ModelResponse,
    Role,
    StopReason,
    TextBlock,
    ToolCall,
    ToolCallStatus,
    ToolError,
    ToolErrorType,
    ToolKind,
    ToolResult,
    ToolResultBlock,
    ToolUseBlock,
    Usage,
)

__all__ = [
    "CancellationToken",
    "AlfredError",
    "ApiError",
    "ConfigError",
    "LoadError",
    "NetworkError",
    "ProviderError",
    "UnauthorizedError",
    "StructuredError",
    "to_structured_error",
    "ModelClient",
    # Conversation types
    "Role",
    "Message",
    "ContentBlock",
    "TextBlock",
    "ToolUseBlock",
    "ToolResultBlock",
    "ModelResponse",
    "StopReason",
    "Usage",
    # Tool types
    "ToolCall",
    "ToolCallStatus",
    "ToolResult",
    "ToolError",
    "ToolErrorType",
    "ToolKind",
]
