"""Stream events emitted by the conversation engine.

The engine's only output channel: a caller iterates send_message_stream and
dispatches on the event type. Events are frozen dataclasses following the
pattern in core/types.py.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from alfred.core.errors import StructuredError
    from alfred.core.types import StopReason, ToolCall

__all__ = [
    "StreamEvent",
    "Content",
    "ToolExecuting",
    "ToolComplete",
    "Thinking",
    "Complete",
    "Error",
]


@dataclass(frozen=True)
class StreamEvent:
    """Base class for engine events."""


@dataclass(frozen=True)
class Content(StreamEvent):
    """Assistant text from one model response.

    Attributes:
        text: The consolidated response text.
    """

    text: str


@dataclass(frozen=True)
class ToolExecuting(StreamEvent):
    """A tool call is about to run.

    Attributes:
        tool_call: The call in the EXECUTING state.
    """

    tool_call: "ToolCall"


@dataclass(frozen=True)
class ToolComplete(StreamEvent):
    """A tool call settled.

    Attributes:
        tool_call: The call in the COMPLETED or FAILED state, with its result.
    """

    tool_call: "ToolCall"


@dataclass(frozen=True)
class Thinking(StreamEvent):
    """Tool results were sent back; the model is being called again."""


@dataclass(frozen=True)
class Complete(StreamEvent):
    """The run finished because the model stopped requesting tools.

    Attributes:
        stop_reason: The last response's stop reason (None if absent).
    """

    stop_reason: "StopReason | None"


@dataclass(frozen=True)
class Error(StreamEvent):
    """The run ended with a model-call failure.

    Attributes:
        error: Plain-data description of the failure.
    """

    error: "StructuredError"
