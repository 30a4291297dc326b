"""Base tool interface for Alfred.

A tool is one capability the model can invoke: reading a file, running a
shell command, updating the task list. Every tool declares a name, a
description for the model and a JSON Schema for its input; the runtime
validates input against that schema before the tool ever runs.

Tools never decide their own permissions. A tool that needs the user's
consent describes what should be shown (should_confirm_execute); the
executor routes that through the confirmation broker.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import jsonschema

from alfred.core.types import ToolKind, ToolResult
from alfred.tools.services import ServiceContainer

if TYPE_CHECKING:
    from alfred.core.cancel import CancellationToken
    from alfred.policy.types import ConfirmationDetails

OutputCallback = Callable[[str], None]

_PARAM_PREVIEW_LENGTH = 60


@dataclass(frozen=True)
class ToolSchema:
    """What the model sees of a tool.

    Attributes:
        name: Tool name used in tool_use blocks.
        description: Text that tells the model when to use the tool.
        input_schema: JSON Schema for the tool's input object.
    """

    name: str
    description: str
    input_schema: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        """Anthropic Messages API tool definition."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }


@dataclass
class ToolContext:
    """Per-call runtime context handed to BaseTool.run.

    Attributes:
        cwd: Working directory relative paths resolve against.
        cancel_token: Shared cancellation token of the current turn.
        on_output: Receives incremental output (shell streaming).
        services: Shared session services.
    """

    cwd: Path
    cancel_token: CancellationToken
    on_output: OutputCallback | None = None
    services: ServiceContainer = field(default_factory=ServiceContainer)

    def resolve_path(self, path: str) -> Path:
        """Resolve path against cwd (absolute paths are kept)."""
        p = Path(path).expanduser()
        if not p.is_absolute():
            p = self.cwd / p
        return p.resolve()

    def emit(self, chunk: str) -> None:
        if self.on_output is not None:
            self.on_output(chunk)


def format_validation_error(error: jsonschema.ValidationError, tool_name: str) -> str:
    """Turn a jsonschema ValidationError into a message for the model."""
    path = ".".join(str(p) for p in error.absolute_path) if error.absolute_path else ""
    validator = error.validator

    if validator == "required":
        return f"{tool_name}: {error.message}"

    if validator == "enum":
        if path:
            return f"{tool_name}: Parameter '{path}' must be one of {error.validator_value}"
        return f"{tool_name}: Value must be one of {error.validator_value}"

    if validator == "type" and path:
        return f"{tool_name}: Parameter '{path}' has wrong type - {error.message}"

    if path:
        return f"{tool_name}: Parameter '{path}' {error.message}"
    return f"{tool_name}: {error.message}"


class BaseTool(ABC):
    """Abstract base for all tools.

    Subclasses provide name, description, input_schema and run(). The other
    hooks have safe defaults: no tool-specific validation, no permission, no
    confirmation.

    Example:
        class EchoTool(BaseTool):
            @property
            def name(self) -> str:
                return "echo"

            @property
            def description(self) -> str:
                return "Echo a message back"

            @property
            def input_schema(self) -> dict[str, Any]:
                return {
                    "type": "object",
                    "properties": {"message": {"type": "string"}},
                    "required": ["message"],
                }

            async def run(self, params, context) -> ToolResult:
                return ToolResult(llm_content=params["message"])
    """

    def __init__(self, services: ServiceContainer | None = None) -> None:
        self._services = services if services is not None else ServiceContainer()

    @property
    def services(self) -> ServiceContainer:
        return self._services

    def resolve_path(self, path: str) -> Path:
        """Resolve path against the session cwd (used outside of run)."""
        p = Path(path).expanduser()
        if not p.is_absolute():
            p = self._services.get_cwd() / p
        return p.resolve()

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique tool name (used in tool calls)."""

    @property
    def display_name(self) -> str:
        """Short human-facing name."""
        return self.name

    @property
    @abstractmethod
    def description(self) -> str:
        """Description shown to the model."""

    @property
    def kind(self) -> ToolKind:
        return ToolKind.OTHER

    @property
    @abstractmethod
    def input_schema(self) -> dict[str, Any]:
        """JSON Schema for the input object."""

    @property
    def schema(self) -> ToolSchema:
        return ToolSchema(
            name=self.name,
            description=self.description,
            input_schema=self.input_schema,
        )

    def validate(self, params: dict[str, Any]) -> str | None:
        """Validate params against the input schema, then validate_params.

        Returns:
            An error message, or None if params are valid.
        """
        try:
            jsonschema.validate(params, self.input_schema)
        except jsonschema.ValidationError as e:
            return format_validation_error(e, self.name)
        return self.validate_params(params)

    def validate_params(self, params: dict[str, Any]) -> str | None:
        """Tool-specific checks beyond the schema (override as needed)."""
        return None

    @abstractmethod
    async def run(self, params: dict[str, Any], context: ToolContext) -> ToolResult:
        """Execute the tool.

        Expected failures are returned as a failed ToolResult. Anything
        raised is converted by the executor into EXECUTION_FAILED.
        """

    def needs_permission(self, params: dict[str, Any]) -> bool:
        return False

    def get_permission_request(self, params: dict[str, Any]) -> dict[str, Any] | None:
        """Describe the permission this call would need, for display."""
        return None

    async def should_confirm_execute(
        self,
        params: dict[str, Any],
        cancel_token: CancellationToken,
    ) -> ConfirmationDetails | None:
        """Return what to show the user, or None if no confirmation is needed."""
        return None

    def format_params(self, params: dict[str, Any]) -> str:
        """One-line rendering of params for status lines."""
        parts = []
        for key, value in params.items():
            text = value if isinstance(value, str) else repr(value)
            text = text.replace("\n", "\\n")
            if len(text) > _PARAM_PREVIEW_LENGTH:
                text = text[: _PARAM_PREVIEW_LENGTH - 3] + "..."
            parts.append(f"{key}={text}")
        return ", ".join(parts)

    def summarize_result(self, result: ToolResult) -> str:
        """One-line summary of a result for status lines."""
        if result.error is not None:
            return f"Error: {result.error.message}"
        display = result.return_display
        if isinstance(display, str) and display:
            first_line = display.splitlines()[0]
            return first_line[:_PARAM_PREVIEW_LENGTH * 2]
        return "Done"
