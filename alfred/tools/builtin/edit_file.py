"""Edit file tool: exact string replacement with a confirmation diff."""

import asyncio
from dataclasses import dataclass
from typing import Any

from alfred.core.cancel import CancellationToken
from alfred.core.types import ToolErrorType, ToolKind, ToolResult
from alfred.policy.types import ConfirmationDetails, EditConfirmationDetails
from alfred.tools.base import BaseTool, ToolContext
from alfred.tools.builtin.file_utils import (
    add_line_numbers,
    atomic_write_text,
    diff_stat,
    read_text_if_exists,
    unified_diff,
)

# Context lines shown around an edit in the result snippet
N_LINES_SNIPPET = 4


class EditError(Exception):
    """An edit that cannot be applied to the current file content."""

    def __init__(self, message: str, error_type: ToolErrorType) -> None:
        super().__init__(message)
        self.message = message
        self.error_type = error_type


@dataclass(frozen=True)
class PlannedEdit:
    """Result of applying an edit in memory."""

    old_content: str | None
    new_content: str
    replacements: int

    @property
    def creates_file(self) -> bool:
        return self.old_content is None


def plan_edit(
    content: str | None,
    old_string: str,
    new_string: str,
    replace_all: bool = False,
) -> PlannedEdit:
    """Apply an edit to content (None for a missing file) in memory.

    Raises:
        EditError: If the edit cannot be applied.
    """
    if content is None:
        if old_string:
            raise EditError(
                "File not found. Use an empty old_string to create a new file.",
                ToolErrorType.FILE_NOT_FOUND,
            )
        return PlannedEdit(None, new_string, 1)

    if not old_string:
        if content:
            raise EditError(
                "Cannot create file: it already exists and is not empty.",
                ToolErrorType.EXECUTION_FAILED,
            )
        return PlannedEdit(content, new_string, 1)

    count = content.count(old_string)
    if count == 0:
        raise EditError(
            "String to replace not found in file. Make sure it matches exactly, "
            "including whitespace and line breaks.",
            ToolErrorType.EXECUTION_FAILED,
        )
    if count > 1 and not replace_all:
        raise EditError(
            f"Found {count} matches of the string to replace. Add more context "
            "to make it unique, or set replace_all to true.",
            ToolErrorType.EXECUTION_FAILED,
        )

    if replace_all:
        return PlannedEdit(content, content.replace(old_string, new_string), count)
    return PlannedEdit(content, content.replace(old_string, new_string, 1), 1)


def edit_snippet(content: str, old_string: str, new_string: str) -> tuple[str, int]:
    """Lines around the first replacement, after the edit.

    Returns:
        Tuple of (numbered snippet, first line number).
    """
    if old_string:
        replacement_line = content.split(old_string, 1)[0].count("\n")
        new_lines = content.replace(old_string, new_string, 1).splitlines()
    else:
        replacement_line = 0
        new_lines = new_string.splitlines()
    start = max(0, replacement_line - N_LINES_SNIPPET)
    end = replacement_line + N_LINES_SNIPPET + new_string.count("\n") + 1
    return add_line_numbers(new_lines[start:end], start + 1), start + 1


class EditFileTool(BaseTool):
    """Replaces an exact string in a file.

    The match must be unique unless replace_all is set. An empty old_string
    creates a new file (or fills an existing empty one).
    """

    @property
    def name(self) -> str:
        return "edit_file"

    @property
    def display_name(self) -> str:
        return "Edit"

    @property
    def description(self) -> str:
        return (
            "Performs exact string replacements in files. old_string must match the "
            "file exactly, including indentation, and must be unique unless "
            "replace_all is true. Use an empty old_string to create a new file. "
            "Read the file first so the match is exact."
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
                    "description": "Path of the file to modify",
                },
                "old_string": {
                    "type": "string",
                    "description": "The text to replace",
                },
                "new_string": {
                    "type": "string",
                    "description": "The replacement text (must differ from old_string)",
                },
                "replace_all": {
                    "type": "boolean",
                    "description": "Replace every occurrence of old_string (default false)",
                },
            },
            "required": ["file_path", "old_string", "new_string"],
            "additionalProperties": False,
        }

    def validate_params(self, params: dict[str, Any]) -> str | None:
        if not params["file_path"].strip():
            return "file_path must not be empty"
        if params["old_string"] == params["new_string"]:
            return "No changes to make: old_string and new_string are exactly the same."
        return None

    def needs_permission(self, params: dict[str, Any]) -> bool:
        return True

    def get_permission_request(self, params: dict[str, Any]) -> dict[str, Any]:
        path = self.resolve_path(params["file_path"])
        creating = params["old_string"] == "" and not path.exists()
        return {
            "file_path": str(path),
            "content": params["new_string"],
            "action": "create" if creating else "update",
        }

    async def should_confirm_execute(
        self,
        params: dict[str, Any],
        cancel_token: CancellationToken,
    ) -> ConfirmationDetails | None:
        file_name = params["file_path"]
        path = self.resolve_path(file_name)
        try:
            content = await asyncio.to_thread(read_text_if_exists, path)
            planned = plan_edit(
                content,
                params["old_string"],
                params["new_string"],
                params.get("replace_all", False),
            )
        except (OSError, EditError):
            # run() reports the failure; there is nothing to preview
            return None
        return EditConfirmationDetails(
            title=f"Confirm Edit: {file_name}",
            file_path=str(path),
            file_name=file_name,
            file_diff=unified_diff(file_name, planned.old_content or "", planned.new_content),
            is_modifying=not planned.creates_file,
        )

    def format_params(self, params: dict[str, Any]) -> str:
        return params.get("file_path", "")

    def summarize_result(self, result: ToolResult) -> str:
        if result.error is not None:
            return f"Error: {result.error.message}"
        display = result.return_display
        if isinstance(display, dict):
            stat = display["diff_stat"]
            return (
                f"Updated {display['file_name']} "
                f"(+{stat['additions']} -{stat['deletions']})"
            )
        return "File edited"

    async def run(self, params: dict[str, Any], context: ToolContext) -> ToolResult:
        file_name = params["file_path"]
        old_string = params["old_string"]
        new_string = params["new_string"]
        path = context.resolve_path(file_name)

        try:
            content = await asyncio.to_thread(read_text_if_exists, path)
            planned = plan_edit(
                content, old_string, new_string, params.get("replace_all", False)
            )
            await asyncio.to_thread(atomic_write_text, path, planned.new_content)
        except EditError as e:
            return ToolResult.failure(e.message, e.error_type)
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
                f"Error editing file: {e}", ToolErrorType.EXECUTION_FAILED
            )

        if planned.creates_file:
            return ToolResult(
                llm_content=f"File created successfully at: {file_name}",
                return_display=f"Created {file_name}",
            )

        old_content = planned.old_content or ""
        diff = unified_diff(file_name, old_content, planned.new_content)
        snippet, _ = edit_snippet(old_content, old_string, new_string)
        plural = "s" if planned.replacements != 1 else ""
        return ToolResult(
            llm_content=(
                f"The file {file_name} has been updated ({planned.replacements} "
                f"replacement{plural}). Here's the result of running `cat -n` on a "
                f"snippet of the edited file:\n{snippet}"
            ),
            return_display={
                "file_name": file_name,
                "file_diff": diff,
                "diff_stat": diff_stat(diff),
            },
        )
