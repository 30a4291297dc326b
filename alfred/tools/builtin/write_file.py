"""Write file tool: create or overwrite a file after confirmation."""

import asyncio
from typing import Any

from alfred.core.cancel import CancellationToken
from alfred.core.types import ToolErrorType, ToolKind, ToolResult
from alfred.policy.types import ConfirmationDetails, EditConfirmationDetails
from alfred.tools.base import BaseTool, ToolContext
from alfred.tools.builtin.file_utils import (
    atomic_write_text,
    diff_stat,
    read_text_if_exists,
    unified_diff,
)


class WriteFileTool(BaseTool):
    """Writes content to a file, creating parent directories as needed.

    Always asks for confirmation; the prompt shows the diff against the
    current file (or the whole content for a new file).
    """

    @property
    def name(self) -> str:
        return "write_file"

    @property
    def display_name(self) -> str:
        return "Write"

    @property
    def description(self) -> str:
        return (
            "Writes a file to the local filesystem, overwriting any existing file. "
            "Prefer edit_file for changes to existing files. Parent directories "
            "are created as needed."
        )

    @property
    def kind(self) -> ToolKind:
        return ToolKind.EDIT

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "file_path": {
                    "type": "string",
                    "description": "Path of the file to write",
                },
                "content": {
                    "type": "string",
                    "description": "The full content to write",
                },
            },
            "required": ["file_path", "content"],
            "additionalProperties": False,
        }

    def validate_params(self, params: dict[str, Any]) -> str | None:
        if not params["file_path"].strip():
            return "file_path must not be empty"
        return None

    def needs_permission(self, params: dict[str, Any]) -> bool:
        return True

    def get_permission_request(self, params: dict[str, Any]) -> dict[str, Any]:
        path = self.resolve_path(params["file_path"])
        return {
            "file_path": str(path),
            "content": params["content"],
            "action": "update" if path.exists() else "create",
        }

    async def should_confirm_execute(
        self,
        params: dict[str, Any],
        cancel_token: CancellationToken,
    ) -> ConfirmationDetails | None:
        file_name = params["file_path"]
        path = self.resolve_path(file_name)
        try:
            old = await asyncio.to_thread(read_text_if_exists, path)
        except OSError:
            old = None
        return EditConfirmationDetails(
            title=f"Confirm Write: {file_name}",
            file_path=str(path),
            file_name=file_name,
            file_diff=unified_diff(file_name, old or "", params["content"]),
            is_modifying=old is not None,
        )

    def format_params(self, params: dict[str, Any]) -> str:
        return params.get("file_path", "")

    def summarize_result(self, result: ToolResult) -> str:
        if result.error is not None:
            return f"Error: {result.error.message}"
        display = result.return_display
        if isinstance(display, dict):
            return f"{display['action'].capitalize()}d {display['file_name']}"
        return "File written"

    async def run(self, params: dict[str, Any], context: ToolContext) -> ToolResult:
        file_name = params["file_path"]
        content = params["content"]
        path = context.resolve_path(file_name)

        try:
            old = await asyncio.to_thread(read_text_if_exists, path)
            await asyncio.to_thread(atomic_write_text, path, content)
        except IsADirectoryError:
            return ToolResult.failure(
                f"Path is a directory: {file_name}", ToolErrorType.INVALID_PARAMS
            )
        except PermissionError:
            return ToolResult.failure(
                f"Permission denied: {file_name}", ToolErrorType.PERMISSION_DENIED
            )
        except OSError as e:
            return ToolResult.failure(
                f"Error writing file: {e}", ToolErrorType.EXECUTION_FAILED
            )

        diff = unified_diff(file_name, old or "", content)
        action = "update" if old is not None else "create"
        if action == "create":
            llm_content = f"File created successfully at: {file_name}"
        else:
            llm_content = f"The file {file_name} has been updated."

        return ToolResult(
            llm_content=llm_content,
            return_display={
                "action": action,
                "file_name": file_name,
                "file_diff": diff,
                "diff_stat": diff_stat(diff),
            },
        )
