"""Types shared by the permission policy engine, its store and its broker."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from alfred.core.types import ToolCall, ToolResult


class PolicyDecision(Enum):
    """Outcome of evaluating a tool call against the stored permissions."""

    ALLOW = "allow"
    DENY = "deny"
    ASK_USER = "ask_user"


class ToolConfirmationOutcome(Enum):
    """A human's answer to a confirmation request."""

    PROCEED_ONCE = "proceed_once"
    PROCEED_ALWAYS_SESSION = "proceed_always_session"
    PROCEED_ALWAYS = "proceed_always"
    PROCEED_ALWAYS_PREFIX = "proceed_always_prefix"
    CANCEL = "cancel"

    @property
    def approved(self) -> bool:
        return self is not ToolConfirmationOutcome.CANCEL


@dataclass
class PermissionConfig:
    """Persisted permission lists for one workspace.

    Keys are a bare tool name, ``ToolName(<argument>)``, or the prefix form
    ``ToolName(<prefix>:*)``. allow is kept sorted and deduplicated.
    """

    allow: list[str] = field(default_factory=list)
    deny: list[str] = field(default_factory=list)
    ask: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PermissionConfig:
        def _strings(key: str) -> list[str]:
            value = data.get(key) or []
            return [item for item in value if isinstance(item, str)]

        return cls(allow=_strings("allow"), deny=_strings("deny"), ask=_strings("ask"))

    def to_dict(self) -> dict[str, list[str]]:
        return {"allow": list(self.allow), "deny": list(self.deny), "ask": list(self.ask)}


# --- Confirmation details ---

ConfirmCallback = Callable[[ToolConfirmationOutcome], Awaitable[None]]


@dataclass(frozen=True)
class ConfirmationDetails:
    """Base for what a permission prompt shows.

    Attributes:
        title: Prompt heading.
        on_confirm: Continuation invoked exactly once with the user's outcome.
    """

    type: ClassVar[str] = ""

    title: str
    on_confirm: ConfirmCallback | None = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class ExecConfirmationDetails(ConfirmationDetails):
    """Confirmation for running a shell command.

    Attributes:
        command: The full command line.
        description: What the command is for.
        root_command: Prefix offered for "allow this command prefix always".
    """

    type: ClassVar[str] = "exec"

    command: str = ""
    description: str = ""
    root_command: str = ""


@dataclass(frozen=True)
class EditConfirmationDetails(ConfirmationDetails):
    """Confirmation for creating or modifying a file.

    Attributes:
        file_path: Absolute path of the file.
        file_name: Path as the model wrote it.
        file_diff: Unified diff of the proposed change.
        is_modifying: True if the file already exists.
    """

    type: ClassVar[str] = "edit"

    file_path: str = ""
    file_name: str = ""
    file_diff: str = ""
    is_modifying: bool = False


@dataclass(frozen=True)
class InfoConfirmationDetails(ConfirmationDetails):
    """Generic confirmation with a prompt and optional URLs."""

    type: ClassVar[str] = "info"

    prompt: str = ""
    urls: tuple[str, ...] = ()


# --- Message bus messages ---


class MessageBusTopic(Enum):
    """Topics on the permission message bus."""

    TOOL_CONFIRMATION_REQUEST = "tool-confirmation-request"
    TOOL_CONFIRMATION_RESPONSE = "tool-confirmation-response"
    TOOL_POLICY_REJECTION = "tool-policy-rejection"
    TOOL_EXECUTION_SUCCESS = "tool-execution-success"
    TOOL_EXECUTION_FAILURE = "tool-execution-failure"


@dataclass(frozen=True)
class BusMessage:
    """Base class for everything published on the message bus."""

    topic: ClassVar[MessageBusTopic]


@dataclass(frozen=True)
class ToolConfirmationRequest(BusMessage):
    """A tool call needs a human decision."""

    topic: ClassVar[MessageBusTopic] = MessageBusTopic.TOOL_CONFIRMATION_REQUEST

    correlation_id: str
    tool_call: ToolCall
    details: ConfirmationDetails


@dataclass(frozen=True)
class ToolConfirmationResponse(BusMessage):
    """A human's answer, matched to its request by correlation id."""

    topic: ClassVar[MessageBusTopic] = MessageBusTopic.TOOL_CONFIRMATION_RESPONSE

    correlation_id: str
    outcome: ToolConfirmationOutcome


@dataclass(frozen=True)
class ToolPolicyRejection(BusMessage):
    """A tool call was denied by stored policy without asking."""

    topic: ClassVar[MessageBusTopic] = MessageBusTopic.TOOL_POLICY_REJECTION

    tool_call: ToolCall
    permission_key: str


@dataclass(frozen=True)
class ToolExecutionSuccess(BusMessage):
    topic: ClassVar[MessageBusTopic] = MessageBusTopic.TOOL_EXECUTION_SUCCESS

    tool_call: ToolCall
    result: ToolResult


@dataclass(frozen=True)
class ToolExecutionFailure(BusMessage):
    topic: ClassVar[MessageBusTopic] = MessageBusTopic.TOOL_EXECUTION_FAILURE

    tool_call: ToolCall
    result: ToolResult
