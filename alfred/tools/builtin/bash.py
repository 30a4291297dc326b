"""Bash tool: run a shell command with streaming output.

Every call produces exec confirmation details; whether the user is actually
asked is the policy engine's decision (safe commands, stored allow entries and
prefix grants skip the prompt).
"""

from typing import Any

from alfred.core.cancel import CancellationToken
from alfred.core.errors import ShellExecutionError
from alfred.core.types import ToolErrorType, ToolKind, ToolResult
from alfred.policy.constants import extract_command_prefix, find_banned_command
from alfred.policy.types import ConfirmationDetails, ExecConfirmationDetails
from alfred.shell.execution import DataEvent, ShellOutputEvent
from alfred.tools.base import BaseTool, ToolContext

DEFAULT_TIMEOUT_MS = 120_000
MAX_TIMEOUT_MS = 600_000

# Output returned to the model is clipped to this many characters
MAX_OUTPUT_CHARS = 30_000


def truncate_output(output: str, limit: int = MAX_OUTPUT_CHARS) -> str:
    if len(output) <= limit:
        return output
    omitted = len(output) - limit
    return f"{output[:limit]}\n\n[... {omitted} characters truncated ...]"


class BashTool(BaseTool):
    """Executes a command with ``bash -c`` in the session working directory."""

    @property
    def name(self) -> str:
        return "bash"

    @property
    def display_name(self) -> str:
        return "Bash"

    @property
    def description(self) -> str:
        return (
            "Executes a bash command in the working directory and returns its output.\n\n"
            "Usage notes:\n"
            "- Quote paths that contain spaces.\n"
            "- Optional timeout in milliseconds (default 120000, max 600000).\n"
            "- Give a short description of what the command does.\n"
            "- Output beyond 30000 characters is truncated.\n"
            "- Chain commands with ';' or '&&' rather than newlines.\n"
            "- Prefer absolute paths over cd."
        )

    @property
    def kind(self) -> ToolKind:
        return ToolKind.EXECUTE

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "command": {
                    "type": "string",
                    "description": "The bash command to execute",
                },
                "timeout": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": MAX_TIMEOUT_MS,
                    "description": "Optional timeout in milliseconds (default 120000)",
                },
                "description": {
                    "type": "string",
                    "description": "What the command does, in 5-10 words",
                },
            },
            "required": ["command"],
            "additionalProperties": False,
        }

    def validate_params(self, params: dict[str, Any]) -> str | None:
        command = params["command"]
        if not command.strip():
            return "Command cannot be empty"
        banned = find_banned_command(command)
        if banned is not None:
            return f"Command '{banned}' is not allowed for security reasons"
        return None

    def needs_permission(self, params: dict[str, Any]) -> bool:
        return True

    def get_permission_request(self, params: dict[str, Any]) -> dict[str, Any]:
        command = params["command"]
        return {"command": command, "root_command": extract_command_prefix(command)}

    async def should_confirm_execute(
        self,
        params: dict[str, Any],
        cancel_token: CancellationToken,
    ) -> ConfirmationDetails | None:
        command = params["command"]
        return ExecConfirmationDetails(
            title="Confirm Bash Command",
            command=command,
            description=params.get("description") or f"Execute: {command}",
            root_command=extract_command_prefix(command),
        )

    def format_params(self, params: dict[str, Any]) -> str:
        return params.get("command", "")

    def summarize_result(self, result: ToolResult) -> str:
        if result.error is not None:
            return f"Failed: {result.error.message}"
        return "Command executed"

    async def run(self, params: dict[str, Any], context: ToolContext) -> ToolResult:
        command = params["command"]
        shell_config = self._services.get_shell_config()
        timeout_ms = min(
            params.get("timeout", shell_config.default_timeout_ms),
            shell_config.max_timeout_ms,
        )

        def on_output(event: ShellOutputEvent) -> None:
            if isinstance(event, DataEvent):
                context.emit(event.chunk)

        try:
            result = await self._services.get_shell().run(
                command,
                context.cwd,
                on_output=on_output,
                config=shell_config,
                cancel_token=context.cancel_token,
                timeout=timeout_ms / 1000,
            )
        except ShellExecutionError as e:
            return ToolResult.failure(e.message, ToolErrorType.EXECUTION_FAILED)

        if result.timed_out:
            return ToolResult.failure(
                f"Command timed out after {timeout_ms} ms: {command}",
                ToolErrorType.TIMEOUT,
                display=result.output or "Command timed out",
            )

        if result.aborted:
            return ToolResult(
                llm_content=(
                    f"Command was cancelled: {command}\n"
                    f"Partial output: {truncate_output(result.output) or '(none)'}"
                ),
                return_display=result.output or "Command was cancelled",
            )

        if result.binary_detected:
            summary = f"[Binary output: {result.bytes_received} bytes]"
            return ToolResult(
                llm_content=f"Command: {command}\n{summary}",
                return_display=summary,
            )

        if result.error is not None:
            return ToolResult.failure(
                f"Command failed: {result.error}",
                ToolErrorType.EXECUTION_FAILED,
                display=result.output or result.error,
            )

        output = truncate_output(result.output.rstrip("\n"))
        lines = [output or "(no output)"]
        if result.exit_code not in (0, None):
            lines.append(f"[exit code: {result.exit_code}]")
        elif result.signal is not None:
            lines.append(f"[terminated by {result.signal}]")

        return ToolResult(
            llm_content="\n".join(lines),
            return_display=result.output or "(no output)",
        )
